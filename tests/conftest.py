"""Pytest configuration and fixtures for Planboard tests."""

import json
import logging
from datetime import date, time
from typing import Any

import httpx
import pytest
import structlog

from planboard.adapters.api import PlanboardClient
from planboard.config.settings import ApiSettings
from planboard.models import CalendarItem, CalendarItemType
from planboard.session import MemoryTokenStore, Session

BASE_URL = "http://planboard.test"


class FakeServer:
    """In-memory stand-in for the planning REST API.

    Items are stored in wire (camelCase) form. ``fail`` maps
    ``(method, path)`` to ``(status, body)`` for canned error responses.
    """

    def __init__(self) -> None:
        self.items: dict[int, dict[str, Any]] = {}
        self.notifications: list[dict[str, Any]] = []
        self.exercises: list[dict[str, Any]] = []
        self.templates: list[dict[str, Any]] = []
        self.sessions: dict[int, list[dict[str, Any]]] = {}
        self.requests: list[httpx.Request] = []
        self.fail: dict[tuple[str, str], tuple[int, str]] = {}
        self.next_id = 100

    def add_item(self, item: CalendarItem) -> None:
        self.items[item.id] = item.to_wire()

    def calls(self, method: str, path: str) -> int:
        return sum(1 for r in self.requests if r.method == method and r.url.path == path)

    def _new_id(self) -> int:
        self.next_id += 1
        return self.next_id

    def _filtered(self, predicate, type_param: str | None) -> list[dict[str, Any]]:
        rows = [it for it in self.items.values() if predicate(it)]
        if type_param:
            rows = [it for it in rows if it["type"] == type_param]
        return sorted(rows, key=lambda it: (it["date"], it.get("startTime", ""), it["id"]))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        method, path = request.method, request.url.path
        if (method, path) in self.fail:
            status, body = self.fail[(method, path)]
            return httpx.Response(status, text=body)

        params = request.url.params
        body = json.loads(request.content) if request.content else None
        parts = path.strip("/").split("/")

        if path == "/api/calendar/month":
            year, month = int(params["year"]), int(params["month"])
            prefix = f"{year:04d}-{month:02d}-"
            items = self._filtered(lambda it: it["date"].startswith(prefix), params.get("type"))
            return httpx.Response(200, json={"year": year, "month": month, "items": items})

        if path == "/api/calendar/day":
            day = params["date"]
            return httpx.Response(
                200, json=self._filtered(lambda it: it["date"] == day, params.get("type"))
            )

        if path == "/api/calendar/items" and method == "POST":
            stored = {**body, "id": self._new_id(), "done": body.get("done", False)}
            self.items[stored["id"]] = stored
            return httpx.Response(201, json=stored)

        if parts[:3] == ["api", "calendar", "items"] and len(parts) == 4:
            item_id = int(parts[3])
            if item_id not in self.items:
                return httpx.Response(404, json={"message": "Item not found"})
            if method == "PUT":
                self.items[item_id] = {**body, "id": item_id}
                return httpx.Response(200, json=self.items[item_id])
            if method == "DELETE":
                del self.items[item_id]
                return httpx.Response(204)

        if path == "/api/notifications/unread":
            return httpx.Response(200, json=[n for n in self.notifications if not n["read"]])

        if path == "/api/notifications":
            return httpx.Response(200, json=self.notifications)

        if parts[:2] == ["api", "notifications"] and parts[-1] == "read":
            for n in self.notifications:
                if n["id"] == int(parts[2]):
                    n["read"] = True
                    return httpx.Response(200, json=n)
            return httpx.Response(404, json={"message": "Notification not found"})

        if path == "/api/workout/exercises":
            if method == "POST":
                exercise = {"id": self._new_id(), "name": body["name"]}
                self.exercises.append(exercise)
                return httpx.Response(201, json=exercise)
            return httpx.Response(200, json=self.exercises)

        if parts[:3] == ["api", "workout", "exercises"] and method == "DELETE":
            self.exercises = [e for e in self.exercises if e["id"] != int(parts[3])]
            return httpx.Response(204)

        if path == "/api/workout/templates":
            if method == "POST":
                template = {"id": self._new_id(), **body}
                self.templates.append(template)
                return httpx.Response(201, json=template)
            return httpx.Response(200, json=self.templates)

        if parts[:3] == ["api", "workout", "templates"]:
            template_id = int(parts[3])
            self.templates = [t for t in self.templates if t["id"] != template_id]
            if method == "PUT":
                template = {"id": template_id, **body}
                self.templates.append(template)
                return httpx.Response(200, json=template)
            return httpx.Response(204)

        if parts[:3] == ["api", "workout", "sessions"]:
            item_id = int(parts[3])
            if method == "PUT":
                self.sessions[item_id] = body["entries"]
            return httpx.Response(
                200,
                json={"calendarItemId": item_id, "entries": self.sessions.get(item_id, [])},
            )

        return httpx.Response(404, text="Not Found")


def build_item(
    item_id: int,
    day: str = "2024-05-01",
    type: CalendarItemType = CalendarItemType.OTHER,
    title: str | None = None,
    start: str | None = None,
    **extra: Any,
) -> CalendarItem:
    return CalendarItem(
        id=item_id,
        date=date.fromisoformat(day),
        type=type,
        title=title or f"Item {item_id}",
        start_time=time.fromisoformat(start) if start else None,
        **extra,
    )


@pytest.fixture
def make_item():
    """Factory for calendar items."""
    return build_item


@pytest.fixture
def session():
    """Session holding a valid token in memory."""
    return Session(MemoryTokenStore("tok-123"))


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
def make_client(session):
    """Build a PlanboardClient whose HTTP traffic goes to ``handler``."""

    def factory(handler) -> PlanboardClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return PlanboardClient(session.store, ApiSettings(base_url=BASE_URL), http_client=http)

    return factory


@pytest.fixture
def client(make_client, server):
    return make_client(server)


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo any CLI logging setup so later tests log to their own streams."""
    yield
    structlog.reset_defaults()
    package_logger = logging.getLogger("planboard")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True
