"""Calendar aggregator: cached month/day/week views kept in sync with the server."""

import asyncio
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass
from datetime import date
from typing import Any, Literal

import structlog

from planboard.adapters.api import PlanboardClient
from planboard.adapters.base import AdapterError, ApiError, SessionInvalidError
from planboard.adapters.push import PushChannel
from planboard.aggregators.events import DEFAULT_COALESCE_DELAY, PushDispatcher, RefreshPlan
from planboard.aggregators.grid import GridCell, build_month_grid, week_days
from planboard.aggregators.reconcile import group_by_date, reconcile_item, remove_item
from planboard.dates import month_key, start_of_month
from planboard.models import (
    CalendarItem,
    CalendarItemRequest,
    CalendarItemType,
    CalendarMonth,
    Notification,
)
from planboard.session import Session

logger = structlog.get_logger()


@dataclass(frozen=True)
class Toast:
    """A short user-facing message."""

    kind: Literal["info", "error"]
    message: str


class CalendarAggregator:
    """Local view state for one signed-in session.

    Holds the loaded month, the selected day, the month buckets needed by the
    week view and the unread notifications. Mutations are applied to these
    caches as soon as the server confirms them, then a background refresh
    fetches ground truth. Push messages trigger coalesced refreshes.

    Failures never propagate out of the public refresh/mutation methods:
    401/403 invalidates the session, anything else becomes a toast.
    """

    def __init__(
        self,
        client: PlanboardClient,
        session: Session,
        *,
        today: date | None = None,
        type_filter: CalendarItemType | None = None,
        on_toast: Callable[[Toast], None] | None = None,
    ) -> None:
        today = today or date.today()
        self.client = client
        self.session = session
        self.cursor_month = start_of_month(today)
        self.selected_date = today
        self.type_filter = type_filter
        self.month: CalendarMonth | None = None
        self.day_items: list[CalendarItem] | None = None
        self.week_months: dict[str, CalendarMonth] = {}
        self.notifications: list[Notification] = []

        self._on_toast = on_toast
        self._background: set[asyncio.Task[Any]] = set()
        self._dispatcher: PushDispatcher | None = None
        self._channel: PushChannel | None = None
        self._pump_task: asyncio.Task[None] | None = None

    async def __aenter__(self) -> "CalendarAggregator":
        await self.client.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
        await self.client.disconnect()

    # ------------------------------------------------------------------
    # Error policy
    # ------------------------------------------------------------------

    def toast(self, kind: Literal["info", "error"], message: str) -> None:
        if self._on_toast is not None:
            self._on_toast(Toast(kind, message))
        else:
            logger.info("Toast", kind=kind, message=message)

    def _report(self, error: AdapterError, fallback: str, *, server_message: bool) -> None:
        if isinstance(error, SessionInvalidError):
            self.session.invalidate()
            return
        if server_message and isinstance(error, ApiError):
            self.toast("error", error.message)
        else:
            self.toast("error", fallback)

    # ------------------------------------------------------------------
    # View selection
    # ------------------------------------------------------------------

    def set_cursor_month(self, day: date) -> None:
        month = start_of_month(day)
        if month != self.cursor_month:
            self.cursor_month = month
            self.month = None

    def select_date(self, day: date) -> None:
        if day != self.selected_date:
            self.selected_date = day
            self.day_items = None

    def set_type_filter(self, type_filter: CalendarItemType | None) -> None:
        if type_filter != self.type_filter:
            self.type_filter = type_filter
            self.month = None
            self.day_items = None
            self.week_months = {}

    # ------------------------------------------------------------------
    # Authoritative fetches
    # ------------------------------------------------------------------

    async def refresh_month(self) -> None:
        cursor, type_filter = self.cursor_month, self.type_filter
        try:
            result = await self.client.get_month(cursor.year, cursor.month, type_filter)
        except AdapterError as e:
            self._report(e, "Failed loading month.", server_message=False)
            return
        if (cursor, type_filter) != (self.cursor_month, self.type_filter):
            logger.debug("Discarding stale month", month=month_key(cursor))
            return
        self.month = result

    async def refresh_day(self, day: date | None = None) -> None:
        day = day or self.selected_date
        type_filter = self.type_filter
        try:
            items = await self.client.get_day(day, type_filter)
        except AdapterError as e:
            self._report(e, "Failed loading day.", server_message=False)
            return
        if (day, type_filter) != (self.selected_date, self.type_filter):
            logger.debug("Discarding stale day", day=day.isoformat())
            return
        self.day_items = items

    async def refresh_notifications(self) -> None:
        try:
            self.notifications = await self.client.list_unread_notifications()
        except SessionInvalidError:
            self.session.invalidate()
        except AdapterError as e:
            logger.debug("Notification refresh failed", error=str(e))

    async def refresh_week(self) -> None:
        """Fetch the month buckets the selected week spans that are not cached."""
        type_filter = self.type_filter
        keys = sorted({month_key(d) for d in week_days(self.selected_date)})
        missing = [k for k in keys if k not in self.week_months]
        if not missing:
            return
        try:
            results = await asyncio.gather(
                *(self.client.get_month(int(k[:4]), int(k[5:7]), type_filter) for k in missing)
            )
        except SessionInvalidError:
            self.session.invalidate()
            return
        except AdapterError as e:
            logger.debug("Week month fetch failed", error=str(e))
            return
        if type_filter != self.type_filter:
            return
        for result in results:
            self.week_months[result.key] = result

    async def refresh_all(self) -> None:
        await asyncio.gather(
            self.refresh_month(),
            self.refresh_day(),
            self.refresh_notifications(),
        )

    # ------------------------------------------------------------------
    # Optimistic reconciliation
    # ------------------------------------------------------------------

    def apply_saved(self, item: CalendarItem) -> None:
        """Merge a server-confirmed item into every cache that shows its date."""
        if item.date == self.selected_date:
            self.day_items = reconcile_item(self.day_items or [], item, self.type_filter)

        if self.month is not None and self.month.contains(item.date):
            self.month = self.month.model_copy(
                update={"items": reconcile_item(self.month.items, item, self.type_filter)}
            )

        bucket = self.week_months.get(month_key(item.date))
        if bucket is not None:
            self.week_months[bucket.key] = bucket.model_copy(
                update={"items": reconcile_item(bucket.items, item, self.type_filter)}
            )

    def apply_deleted(self, item_id: int) -> None:
        """Drop an item id from every cache."""
        self.day_items = remove_item(self.day_items or [], item_id)
        if self.month is not None:
            self.month = self.month.model_copy(
                update={"items": remove_item(self.month.items, item_id)}
            )
        self.week_months = {
            key: bucket.model_copy(update={"items": remove_item(bucket.items, item_id)})
            for key, bucket in self.week_months.items()
        }

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def schedule_refresh(self) -> None:
        """Re-fetch month and selected day without blocking the caller."""
        self._spawn(self.refresh_month())
        self._spawn(self.refresh_day())

    async def settle(self) -> None:
        """Wait for outstanding background refreshes."""
        while True:
            pending = [t for t in self._background if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_or_update(
        self, payload: CalendarItemRequest, editing_id: int | None = None
    ) -> CalendarItem | None:
        """Save an item. Returns the stored item, or None if the save failed."""
        try:
            if editing_id is not None:
                saved = await self.client.update_item(editing_id, payload)
            else:
                saved = await self.client.create_item(payload)
        except AdapterError as e:
            self._report(e, "Save failed.", server_message=True)
            return None

        self.apply_saved(saved)
        self.schedule_refresh()
        logger.info("Item saved", item_id=saved.id, date=saved.date.isoformat())
        return saved

    async def delete(self, item_id: int) -> bool:
        try:
            await self.client.delete_item(item_id)
        except AdapterError as e:
            self._report(e, "Delete failed.", server_message=True)
            return False

        self.apply_deleted(item_id)
        self.schedule_refresh()
        logger.info("Item deleted", item_id=item_id)
        return True

    async def toggle_done(self, item: CalendarItem, done: bool) -> CalendarItem | None:
        payload = CalendarItemRequest.from_item(item, done=done)
        try:
            updated = await self.client.update_item(item.id, payload)
        except AdapterError as e:
            self._report(e, "Update failed.", server_message=True)
            return None

        self.apply_saved(updated)
        self.schedule_refresh()
        return updated

    async def mark_read(self, notification_id: int) -> None:
        try:
            await self.client.mark_notification_read(notification_id)
        except AdapterError as e:
            self._report(e, "Failed marking notification read.", server_message=True)
            return
        await self.refresh_notifications()

    # ------------------------------------------------------------------
    # Push-driven invalidation
    # ------------------------------------------------------------------

    async def apply_push(self, plan: RefreshPlan) -> None:
        jobs = []
        if plan.notifications:
            jobs.append(self.refresh_notifications())
        if plan.month:
            jobs.append(self.refresh_month())
        if plan.day:
            jobs.append(self.refresh_day())
        await asyncio.gather(*jobs)

    def start_push(
        self,
        channel: PushChannel,
        coalesce_delay: float = DEFAULT_COALESCE_DELAY,
        refresh: Callable[[RefreshPlan], Awaitable[None]] | None = None,
    ) -> PushDispatcher:
        """Start the push channel and route its messages into refreshes.

        ``refresh`` replaces ``apply_push`` as the per-pass handler.
        """
        self._channel = channel
        self._dispatcher = PushDispatcher(refresh or self.apply_push, delay=coalesce_delay)
        channel.start()
        self._pump_task = asyncio.ensure_future(self._dispatcher.pump(channel))
        return self._dispatcher

    async def close(self) -> None:
        """Tear down push handling and background refreshes."""
        if self._pump_task is not None and not self._pump_task.done():
            self._pump_task.cancel()
            try:
                await self._pump_task
            except asyncio.CancelledError:
                pass
        self._pump_task = None

        if self._dispatcher is not None:
            await self._dispatcher.close()
            self._dispatcher = None
        if self._channel is not None:
            await self._channel.stop()
            self._channel = None

        for task in list(self._background):
            task.cancel()
        await asyncio.gather(*self._background, return_exceptions=True)
        self._background.clear()

    # ------------------------------------------------------------------
    # Rendering helpers
    # ------------------------------------------------------------------

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.notifications if not n.read)

    def month_items_by_date(self) -> dict[date, list[CalendarItem]]:
        return group_by_date(self.month.items if self.month else [])

    def week_items_by_date(self) -> dict[date, list[CalendarItem]]:
        items = [it for bucket in self.week_months.values() for it in bucket.items]
        return group_by_date(items)

    def month_grid(self, density: str = "detailed") -> list[GridCell]:
        return build_month_grid(self.cursor_month, self.month_items_by_date(), density)
