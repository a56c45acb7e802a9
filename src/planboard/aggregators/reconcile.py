"""Merge helpers for locally cached item lists.

Every helper returns a new list in display order and leaves its input alone.
"""

from collections import defaultdict
from collections.abc import Iterable
from datetime import date

from planboard.models import CalendarItem, CalendarItemType


def sort_items(items: Iterable[CalendarItem]) -> list[CalendarItem]:
    return sorted(items, key=lambda it: it.sort_key)


def upsert_item(items: list[CalendarItem], item: CalendarItem) -> list[CalendarItem]:
    """Replace the entry with ``item.id`` or append ``item``."""
    if any(x.id == item.id for x in items):
        merged = [item if x.id == item.id else x for x in items]
    else:
        merged = [*items, item]
    return sort_items(merged)


def remove_item(items: list[CalendarItem], item_id: int) -> list[CalendarItem]:
    """Drop ``item_id``; a missing id leaves the list as it was."""
    return sort_items(x for x in items if x.id != item_id)


def matches_filter(item: CalendarItem, type_filter: CalendarItemType | None) -> bool:
    return type_filter is None or item.type == type_filter


def reconcile_item(
    items: list[CalendarItem],
    item: CalendarItem,
    type_filter: CalendarItemType | None,
) -> list[CalendarItem]:
    """Upsert ``item`` into a filtered view, or drop it if it no longer matches."""
    if matches_filter(item, type_filter):
        return upsert_item(items, item)
    return remove_item(items, item.id)


def group_by_date(items: Iterable[CalendarItem]) -> dict[date, list[CalendarItem]]:
    """Bucket items per day, each bucket ordered by start time."""
    grouped: dict[date, list[CalendarItem]] = defaultdict(list)
    for item in items:
        grouped[item.date].append(item)
    for bucket in grouped.values():
        bucket.sort(key=lambda it: it.start_time.isoformat() if it.start_time else "")
    return dict(grouped)


def search_items(items: Iterable[CalendarItem], query: str) -> list[CalendarItem]:
    """Case-insensitive match on title or log."""
    needle = query.strip().lower()
    if not needle:
        return list(items)
    return [
        it
        for it in items
        if needle in it.title.lower() or needle in (it.log or "").lower()
    ]
