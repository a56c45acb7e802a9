"""Month and week grid construction for calendar rendering."""

from dataclasses import dataclass, field
from datetime import date, timedelta

from planboard.dates import end_of_month, start_of_month, weekday_index_monday_first, week_start
from planboard.models import CalendarItem

GRID_CELLS = 42

# density -> (indicator dots, preview lines); None means no limit
DENSITY_LIMITS: dict[str, tuple[int | None, int | None]] = {
    "compact": (4, 0),
    "tablet": (3, 1),
    "detailed": (4, 2),
    "list": (None, None),
    "week": (None, None),
}


@dataclass
class GridCell:
    """One day slot. Leading/trailing padding cells have no date."""

    day: date | None = None
    items: list[CalendarItem] = field(default_factory=list)
    dots: list[CalendarItem] = field(default_factory=list)
    previews: list[CalendarItem] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.day is None

    @property
    def day_number(self) -> int | None:
        return self.day.day if self.day else None

    @property
    def overflow(self) -> int:
        """Items not represented by a dot."""
        return len(self.items) - len(self.dots)


def _take(items: list[CalendarItem], limit: int | None) -> list[CalendarItem]:
    return list(items) if limit is None else list(items[:limit])


def build_month_grid(
    month: date,
    items_by_date: dict[date, list[CalendarItem]] | None = None,
    density: str = "detailed",
) -> list[GridCell]:
    """Lay out the month containing ``month`` as 6 Monday-first weeks.

    Always returns exactly 42 cells.
    """
    if density not in DENSITY_LIMITS:
        raise ValueError(f"Unknown density: {density!r}")
    dot_limit, line_limit = DENSITY_LIMITS[density]
    items_by_date = items_by_date or {}

    first = start_of_month(month)
    last = end_of_month(month)

    cells = [GridCell() for _ in range(weekday_index_monday_first(first))]
    for offset in range(last.day):
        day = first + timedelta(days=offset)
        items = list(items_by_date.get(day, []))
        cells.append(
            GridCell(
                day=day,
                items=items,
                dots=_take(items, dot_limit),
                previews=_take(items, line_limit),
            )
        )

    while len(cells) < GRID_CELLS:
        cells.append(GridCell())
    return cells


def grid_weeks(cells: list[GridCell]) -> list[list[GridCell]]:
    """Split a flat grid into rows of 7."""
    return [cells[i : i + 7] for i in range(0, len(cells), 7)]


def week_days(selected: date) -> list[date]:
    """The 7 dates of the Monday-first week containing ``selected``."""
    monday = week_start(selected)
    return [monday + timedelta(days=i) for i in range(7)]
