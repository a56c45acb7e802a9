"""Calendar date helpers. All dates are naive, no time zone."""

import calendar
from datetime import date, time, timedelta


def pad2(n: int) -> str:
    return f"{n:02d}"


def to_iso_date(d: date) -> str:
    return d.isoformat()


def from_iso_date(iso: str) -> date:
    """Parse ``YYYY-MM-DD``; missing month/day default to 1."""
    parts = [int(p) for p in iso.strip().split("-") if p]
    year = parts[0]
    month = parts[1] if len(parts) > 1 else 1
    day = parts[2] if len(parts) > 2 else 1
    return date(year, month, day)


def month_key(d: date) -> str:
    """``YYYY-MM`` bucket key for the month containing ``d``."""
    return f"{d.year:04d}-{pad2(d.month)}"


def start_of_month(d: date) -> date:
    return d.replace(day=1)


def end_of_month(d: date) -> date:
    return d.replace(day=calendar.monthrange(d.year, d.month)[1])


def weekday_index_monday_first(d: date) -> int:
    """0=Mon ... 6=Sun."""
    return d.weekday()


def add_months(d: date, delta: int) -> date:
    """First day of the month ``delta`` months away from ``d``."""
    index = d.year * 12 + (d.month - 1) + delta
    return date(index // 12, index % 12 + 1, 1)


def week_start(d: date) -> date:
    """Monday of the week containing ``d``."""
    return d - timedelta(days=weekday_index_monday_first(d))


def month_label(d: date) -> str:
    return f"{calendar.month_name[d.month]} {d.year}"


def to_time_input(value: time | str | None) -> str:
    """Render a time for editing as ``HH:MM`` (server may send seconds)."""
    if value is None:
        return ""
    text = value.isoformat() if isinstance(value, time) else value
    return text[:5] if len(text) >= 5 else text


def from_time_input(value: str) -> time | None:
    """Parse ``HH:MM`` or ``HH:MM:SS``; blank input means no time."""
    text = value.strip()
    if not text:
        return None
    return time.fromisoformat(text)
