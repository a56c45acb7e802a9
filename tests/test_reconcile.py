"""Tests for cached list merging."""

from datetime import date

from planboard.aggregators.reconcile import (
    group_by_date,
    reconcile_item,
    remove_item,
    search_items,
    upsert_item,
)
from planboard.models import CalendarItemType


class TestUpsert:
    def test_append_keeps_display_order(self, make_item):
        items = [make_item(2, start="10:00"), make_item(3, start="12:00")]
        merged = upsert_item(items, make_item(1, start="11:00"))
        assert [it.id for it in merged] == [2, 1, 3]

    def test_untimed_sorts_first(self, make_item):
        merged = upsert_item([make_item(1, start="08:00")], make_item(5))
        assert [it.id for it in merged] == [5, 1]

    def test_replace_is_idempotent(self, make_item):
        items = [make_item(1), make_item(2)]
        changed = make_item(2, title="Renamed")
        once = upsert_item(items, changed)
        twice = upsert_item(once, changed)
        assert once == twice
        assert [it.title for it in twice] == ["Item 1", "Renamed"]

    def test_moved_date_reorders(self, make_item):
        items = [make_item(1, "2024-05-02"), make_item(2, "2024-05-03")]
        merged = upsert_item(items, make_item(2, "2024-05-01"))
        assert [it.id for it in merged] == [2, 1]

    def test_input_is_untouched(self, make_item):
        items = [make_item(1)]
        upsert_item(items, make_item(2))
        assert len(items) == 1


class TestRemove:
    def test_remove(self, make_item):
        assert remove_item([make_item(1), make_item(2)], 1) == [make_item(2)]

    def test_missing_id_is_noop(self, make_item):
        items = [make_item(1), make_item(2)]
        assert remove_item(items, 99) == items


class TestReconcile:
    def test_matching_filter_upserts(self, make_item):
        workout = make_item(1, type=CalendarItemType.WORKOUT)
        assert reconcile_item([], workout, CalendarItemType.WORKOUT) == [workout]

    def test_no_longer_matching_is_removed(self, make_item):
        items = [make_item(1, type=CalendarItemType.WORKOUT)]
        retyped = make_item(1, type=CalendarItemType.JOB)
        assert reconcile_item(items, retyped, CalendarItemType.WORKOUT) == []

    def test_no_filter(self, make_item):
        job = make_item(1, type=CalendarItemType.JOB)
        assert reconcile_item([], job, None) == [job]


def test_group_by_date(make_item):
    grouped = group_by_date(
        [
            make_item(1, "2024-05-02", start="15:00"),
            make_item(2, "2024-05-01"),
            make_item(3, "2024-05-02", start="07:00"),
        ]
    )
    assert [it.id for it in grouped[date(2024, 5, 2)]] == [3, 1]
    assert [it.id for it in grouped[date(2024, 5, 1)]] == [2]


def test_search_items(make_item):
    items = [make_item(1, title="Leg day"), make_item(2, title="Dentist", log="bring LEGO")]
    assert [it.id for it in search_items(items, "leg")] == [1, 2]
    assert [it.id for it in search_items(items, "dent")] == [2]
    assert search_items(items, "  ") == items
