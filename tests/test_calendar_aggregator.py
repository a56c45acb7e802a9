"""Tests for the calendar aggregator."""

import asyncio
from datetime import date

import httpx
import pytest

from planboard.aggregators.calendar import CalendarAggregator, Toast
from planboard.aggregators.events import CALENDAR_ONLY, NOTIFICATIONS_ONLY
from planboard.models import CalendarItemRequest, CalendarItemType, CalendarMonth

TODAY = date(2024, 5, 1)


@pytest.fixture
def toasts():
    return []


@pytest.fixture
def calendar(client, session, toasts):
    return CalendarAggregator(client, session, today=TODAY, on_toast=toasts.append)


def _request(title="Run", day=TODAY, type=CalendarItemType.WORKOUT):
    return CalendarItemRequest(date=day, type=type, title=title)


class TestRefresh:
    async def test_refresh_all(self, calendar, server, make_item):
        server.add_item(make_item(1, "2024-05-01"))
        server.add_item(make_item(2, "2024-05-20"))
        server.notifications.append(
            {"id": 1, "type": "UPCOMING", "message": "Soon", "read": False}
        )

        await calendar.refresh_all()

        assert [it.id for it in calendar.month.items] == [1, 2]
        assert [it.id for it in calendar.day_items] == [1]
        assert calendar.unread_count == 1

    async def test_failure_toasts_generic_message(self, calendar, server, toasts):
        server.fail[("GET", "/api/calendar/month")] = (500, '{"message": "boom"}')
        await calendar.refresh_month()
        assert toasts == [Toast("error", "Failed loading month.")]
        assert calendar.month is None

    async def test_garbled_response_toasts(self, make_client, session, toasts):
        client = make_client(lambda request: httpx.Response(200, text="<html>proxy</html>"))
        calendar = CalendarAggregator(client, session, today=TODAY, on_toast=toasts.append)

        await calendar.refresh_month()

        assert toasts == [Toast("error", "Failed loading month.")]
        assert calendar.month is None

    async def test_session_invalid_clears_token(self, calendar, server, session, toasts):
        server.fail[("GET", "/api/calendar/day")] = (401, "")
        await calendar.refresh_day()

        assert session.token is None
        assert session.invalidated
        assert toasts == []

    async def test_notification_failure_is_silent(self, calendar, server, toasts):
        server.fail[("GET", "/api/notifications/unread")] = (500, "")
        await calendar.refresh_notifications()
        assert toasts == []

    async def test_stale_month_is_discarded(self, make_client, session, server, make_item):
        server.add_item(make_item(1, "2024-05-01"))
        release = asyncio.Event()

        async def slow(request: httpx.Request) -> httpx.Response:
            await release.wait()
            return server(request)

        calendar = CalendarAggregator(make_client(slow), session, today=TODAY)
        task = asyncio.ensure_future(calendar.refresh_month())
        await asyncio.sleep(0)
        calendar.set_cursor_month(date(2024, 6, 1))
        release.set()
        await task

        assert calendar.month is None

    async def test_stale_day_is_discarded(self, make_client, session, server, make_item):
        server.add_item(make_item(1, "2024-05-01"))
        release = asyncio.Event()

        async def slow(request: httpx.Request) -> httpx.Response:
            await release.wait()
            return server(request)

        calendar = CalendarAggregator(make_client(slow), session, today=TODAY)
        task = asyncio.ensure_future(calendar.refresh_day())
        await asyncio.sleep(0)
        calendar.select_date(date(2024, 5, 2))
        release.set()
        await task

        assert calendar.day_items is None

    async def test_week_fetches_each_spanned_month_once(self, client, session, server, make_item):
        server.add_item(make_item(1, "2024-04-30"))
        server.add_item(make_item(2, "2024-05-02"))
        calendar = CalendarAggregator(client, session, today=TODAY)

        await calendar.refresh_week()
        await calendar.refresh_week()

        assert sorted(calendar.week_months) == ["2024-04", "2024-05"]
        assert server.calls("GET", "/api/calendar/month") == 2
        by_date = calendar.week_items_by_date()
        assert [it.id for it in by_date[date(2024, 4, 30)]] == [1]


class TestReconcile:
    def test_saved_item_lands_in_day_and_month(self, calendar, make_item):
        calendar.day_items = []
        calendar.month = CalendarMonth(year=2024, month=5)

        calendar.apply_saved(make_item(3, "2024-05-01"))

        assert [it.id for it in calendar.day_items] == [3]
        assert [it.id for it in calendar.month.items] == [3]

    def test_other_month_is_untouched(self, calendar, make_item):
        calendar.month = CalendarMonth(year=2024, month=5)
        calendar.day_items = []
        calendar.apply_saved(make_item(3, "2024-06-01"))
        assert calendar.month.items == []
        assert calendar.day_items == []

    def test_item_leaving_filter_is_removed(self, client, session, make_item):
        calendar = CalendarAggregator(
            client, session, today=TODAY, type_filter=CalendarItemType.WORKOUT
        )
        workout = make_item(1, type=CalendarItemType.WORKOUT)
        calendar.day_items = [workout]
        calendar.month = CalendarMonth(year=2024, month=5, items=[workout])

        calendar.apply_saved(make_item(1, type=CalendarItemType.JOB))

        assert calendar.day_items == []
        assert calendar.month.items == []

    def test_week_bucket_upsert_and_filter_removal(self, client, session, make_item):
        calendar = CalendarAggregator(
            client, session, today=TODAY, type_filter=CalendarItemType.WORKOUT
        )
        calendar.week_months = {
            "2024-04": CalendarMonth(year=2024, month=4),
            "2024-05": CalendarMonth(year=2024, month=5),
        }

        calendar.apply_saved(make_item(7, "2024-05-03", CalendarItemType.WORKOUT, start="18:00"))
        calendar.apply_saved(make_item(8, "2024-05-03", CalendarItemType.WORKOUT, start="07:00"))

        assert [it.id for it in calendar.week_months["2024-05"].items] == [8, 7]
        assert calendar.week_months["2024-04"].items == []

        calendar.apply_saved(make_item(7, "2024-05-03", CalendarItemType.JOB, start="18:00"))

        assert [it.id for it in calendar.week_months["2024-05"].items] == [8]

    def test_uncached_week_month_is_not_created(self, calendar, make_item):
        calendar.apply_saved(make_item(7, "2024-07-03"))
        assert calendar.week_months == {}

    def test_delete_removes_everywhere(self, calendar, make_item):
        item = make_item(1)
        calendar.day_items = [item]
        calendar.month = CalendarMonth(year=2024, month=5, items=[item])
        calendar.week_months = {"2024-05": CalendarMonth(year=2024, month=5, items=[item])}

        calendar.apply_deleted(1)

        assert calendar.day_items == []
        assert calendar.month.items == []
        assert calendar.week_months["2024-05"].items == []

    def test_filter_change_drops_caches(self, calendar):
        calendar.month = CalendarMonth(year=2024, month=5)
        calendar.day_items = []
        calendar.week_months = {"2024-05": CalendarMonth(year=2024, month=5)}

        calendar.set_type_filter(CalendarItemType.JOB)

        assert calendar.month is None
        assert calendar.day_items is None
        assert calendar.week_months == {}


class TestMutations:
    async def test_create_then_background_refresh(self, calendar, server):
        await calendar.refresh_all()
        before = server.calls("GET", "/api/calendar/month")

        saved = await calendar.create_or_update(_request())
        assert saved is not None
        assert [it.id for it in calendar.day_items] == [saved.id]

        await calendar.settle()
        assert server.calls("GET", "/api/calendar/month") == before + 1
        assert [it.id for it in calendar.month.items] == [saved.id]

    async def test_update(self, calendar, server, make_item):
        server.add_item(make_item(5, title="Old"))
        await calendar.refresh_day()

        saved = await calendar.create_or_update(_request(title="New"), editing_id=5)

        assert saved.id == 5
        assert [it.title for it in calendar.day_items] == ["New"]
        await calendar.settle()

    async def test_save_failure_toasts_server_message(self, calendar, server, toasts):
        server.fail[("POST", "/api/calendar/items")] = (400, '{"message": "Invalid date"}')

        assert await calendar.create_or_update(_request()) is None
        assert toasts == [Toast("error", "Invalid date")]

    async def test_delete(self, calendar, server, make_item):
        server.add_item(make_item(5))
        await calendar.refresh_day()

        assert await calendar.delete(5) is True
        assert calendar.day_items == []
        await calendar.settle()
        assert 5 not in server.items

    async def test_delete_missing_toasts(self, calendar, toasts):
        assert await calendar.delete(404) is False
        assert toasts == [Toast("error", "Item not found")]

    async def test_toggle_done(self, calendar, server, make_item):
        item = make_item(5)
        server.add_item(item)

        updated = await calendar.toggle_done(item, True)

        assert updated.done is True
        assert server.items[5]["done"] is True
        await calendar.settle()

    async def test_mark_read_refreshes_unread(self, calendar, server):
        server.notifications.append({"id": 3, "type": "ITEM_CREATED", "message": "x", "read": False})
        await calendar.refresh_notifications()
        assert calendar.unread_count == 1

        await calendar.mark_read(3)
        assert calendar.unread_count == 0

    async def test_mutation_401_invalidates(self, calendar, server, session, toasts):
        server.fail[("POST", "/api/calendar/items")] = (403, "Forbidden")
        assert await calendar.create_or_update(_request()) is None
        assert session.invalidated
        assert toasts == []


class TestPush:
    async def test_apply_push_notifications_only(self, calendar, server):
        await calendar.apply_push(NOTIFICATIONS_ONLY)
        assert server.calls("GET", "/api/notifications/unread") == 1
        assert server.calls("GET", "/api/calendar/month") == 0

    async def test_apply_push_calendar(self, calendar, server):
        await calendar.apply_push(CALENDAR_ONLY)
        assert server.calls("GET", "/api/calendar/month") == 1
        assert server.calls("GET", "/api/calendar/day") == 1
        assert server.calls("GET", "/api/notifications/unread") == 0

    async def test_close_without_push(self, calendar):
        calendar.schedule_refresh()
        await calendar.close()
        await calendar.settle()
