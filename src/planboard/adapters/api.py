"""REST API client for the planning service."""

import json
from datetime import date
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from planboard.adapters.base import (
    ApiError,
    BaseAdapter,
    ResponseError,
    SessionInvalidError,
    TransportError,
)
from planboard.config.settings import ApiSettings
from planboard.models import (
    AuthToken,
    CalendarItem,
    CalendarItemRequest,
    CalendarItemType,
    CalendarMonth,
    Exercise,
    Notification,
    WorkoutEntryRequest,
    WorkoutSession,
    WorkoutTemplate,
    WorkoutTemplateRequest,
)
from planboard.session import MemoryTokenStore, TokenStore

M = TypeVar("M", bound=BaseModel)


def error_message(response: httpx.Response) -> str:
    """Best-effort human message for a failed response.

    A JSON object's non-blank ``message`` string wins, then the raw body,
    then the reason phrase.
    """
    raw = response.text.strip()
    if not raw:
        return response.reason_phrase
    if raw.startswith(("{", "[")):
        try:
            parsed = json.loads(raw)
        except ValueError:
            parsed = None
        if isinstance(parsed, dict):
            message = parsed.get("message")
            if isinstance(message, str) and message.strip():
                return message.strip()
    return raw


class PlanboardClient(BaseAdapter):
    """Adapter for the planning service REST API.

    Covers:
    - Authentication (register, login)
    - Calendar items by month/day, plus create/update/delete
    - Notifications
    - Workout exercises, templates and per-item sessions

    The bearer token is read from ``tokens`` on every authenticated call, so
    a login through the same store is picked up immediately.
    """

    def __init__(
        self,
        tokens: TokenStore | None = None,
        api_settings: ApiSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__("api")
        self.tokens = tokens or MemoryTokenStore()
        self._settings = api_settings or ApiSettings()
        self.base_url = self._settings.base_url.strip().rstrip("/")
        self._client = http_client
        self._owns_client = http_client is None

    async def connect(self) -> bool:
        """Open the HTTP client."""
        if self._client is None:
            kwargs: dict[str, Any] = {}
            if self._settings.timeout is not None:
                kwargs["timeout"] = self._settings.timeout
            self._client = httpx.AsyncClient(**kwargs)
            self._owns_client = True
        self._connected = True
        self.logger.debug("HTTP client ready", base_url=self.base_url)
        return True

    async def disconnect(self) -> None:
        """Close the HTTP client if we opened it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
        self._connected = False

    async def health_check(self) -> bool:
        """Check that the server answers at all (any HTTP status counts)."""
        try:
            await self._send("GET", "/", auth=False, raise_for_status=False)
            return True
        except TransportError:
            return False

    async def _send(
        self,
        method: str,
        path: str,
        *,
        auth: bool = True,
        body: Any = None,
        params: dict[str, str] | None = None,
        raise_for_status: bool = True,
    ) -> httpx.Response:
        if self._client is None:
            await self.connect()
        assert self._client is not None

        headers = {"Content-Type": "application/json"}
        if auth:
            token = self.tokens.load()
            if token:
                headers["Authorization"] = f"Bearer {token}"

        content = json.dumps(body) if body is not None else None
        try:
            response = await self._client.request(
                method,
                f"{self.base_url}{path}",
                params=params,
                content=content,
                headers=headers,
            )
        except httpx.HTTPError as e:
            self.logger.warning("Request failed", method=method, path=path, error=str(e))
            raise TransportError(self.name, f"{method} {path} failed: {e}") from e

        if raise_for_status and not response.is_success:
            message = error_message(response) or response.reason_phrase
            self.logger.info(
                "Request rejected", method=method, path=path, status=response.status_code
            )
            if response.status_code in (401, 403):
                raise SessionInvalidError(self.name, response.status_code, message)
            raise ApiError(self.name, response.status_code, message)

        return response

    async def request(
        self,
        method: str,
        path: str,
        *,
        auth: bool = True,
        body: Any = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        """Send one JSON request and return the decoded body (None on 204)."""
        response = await self._send(method, path, auth=auth, body=body, params=params)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            self.logger.warning("Undecodable response", method=method, path=path)
            raise ResponseError(self.name, f"{method} {path} returned invalid JSON") from e

    def _parse(self, model: type[M], data: Any) -> M:
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            self.logger.warning(
                "Unexpected response shape", model=model.__name__, errors=e.error_count()
            )
            raise ResponseError(self.name, f"Unexpected {model.__name__} payload") from e

    def _parse_list(self, model: type[M], data: Any) -> list[M]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise ResponseError(self.name, f"Expected a list of {model.__name__}")
        return [self._parse(model, it) for it in data]

    # Auth

    async def register(self, username: str, password: str) -> AuthToken:
        data = await self.request(
            "POST",
            "/api/auth/register",
            auth=False,
            body={"username": username, "password": password},
        )
        return self._parse(AuthToken, data)

    async def login(self, username: str, password: str) -> AuthToken:
        data = await self.request(
            "POST",
            "/api/auth/login",
            auth=False,
            body={"username": username, "password": password},
        )
        return self._parse(AuthToken, data)

    # Calendar

    async def get_month(
        self, year: int, month: int, type: CalendarItemType | None = None
    ) -> CalendarMonth:
        params = {"year": str(year), "month": str(month)}
        if type:
            params["type"] = type.value
        data = await self.request("GET", "/api/calendar/month", params=params)
        result = self._parse(CalendarMonth, data)
        self.logger.debug("Fetched month", year=year, month=month, count=len(result.items))
        return result

    async def get_day(
        self, day: date, type: CalendarItemType | None = None
    ) -> list[CalendarItem]:
        params = {"date": day.isoformat()}
        if type:
            params["type"] = type.value
        data = await self.request("GET", "/api/calendar/day", params=params)
        return self._parse_list(CalendarItem, data)

    async def create_item(self, payload: CalendarItemRequest) -> CalendarItem:
        data = await self.request("POST", "/api/calendar/items", body=payload.to_wire())
        return self._parse(CalendarItem, data)

    async def update_item(self, item_id: int, payload: CalendarItemRequest) -> CalendarItem:
        data = await self.request(
            "PUT", f"/api/calendar/items/{item_id}", body=payload.to_wire()
        )
        return self._parse(CalendarItem, data)

    async def delete_item(self, item_id: int) -> None:
        await self.request("DELETE", f"/api/calendar/items/{item_id}")

    # Notifications

    async def list_unread_notifications(self) -> list[Notification]:
        data = await self.request("GET", "/api/notifications/unread")
        return self._parse_list(Notification, data)

    async def list_all_notifications(self) -> list[Notification]:
        data = await self.request("GET", "/api/notifications")
        return self._parse_list(Notification, data)

    async def mark_notification_read(self, notification_id: int) -> Notification:
        data = await self.request("POST", f"/api/notifications/{notification_id}/read")
        return self._parse(Notification, data)

    # Workout library

    async def list_exercises(self) -> list[Exercise]:
        data = await self.request("GET", "/api/workout/exercises")
        return self._parse_list(Exercise, data)

    async def create_exercise(self, name: str) -> Exercise:
        data = await self.request("POST", "/api/workout/exercises", body={"name": name})
        return self._parse(Exercise, data)

    async def delete_exercise(self, exercise_id: int) -> None:
        await self.request("DELETE", f"/api/workout/exercises/{exercise_id}")

    async def list_templates(self) -> list[WorkoutTemplate]:
        data = await self.request("GET", "/api/workout/templates")
        return self._parse_list(WorkoutTemplate, data)

    async def create_template(self, payload: WorkoutTemplateRequest) -> WorkoutTemplate:
        data = await self.request("POST", "/api/workout/templates", body=payload.to_wire())
        return self._parse(WorkoutTemplate, data)

    async def update_template(
        self, template_id: int, payload: WorkoutTemplateRequest
    ) -> WorkoutTemplate:
        data = await self.request(
            "PUT", f"/api/workout/templates/{template_id}", body=payload.to_wire()
        )
        return self._parse(WorkoutTemplate, data)

    async def delete_template(self, template_id: int) -> None:
        await self.request("DELETE", f"/api/workout/templates/{template_id}")

    async def get_session(self, calendar_item_id: int) -> WorkoutSession:
        data = await self.request("GET", f"/api/workout/sessions/{calendar_item_id}")
        return self._parse(WorkoutSession, data)

    async def update_session(
        self, calendar_item_id: int, entries: list[WorkoutEntryRequest]
    ) -> WorkoutSession:
        data = await self.request(
            "PUT",
            f"/api/workout/sessions/{calendar_item_id}",
            body={"entries": [e.to_wire() for e in entries]},
        )
        return self._parse(WorkoutSession, data)
