"""Form rules for building calendar item requests from user input."""

from dataclasses import dataclass
from datetime import date

from planboard.adapters.base import ValidationError
from planboard.dates import from_time_input, to_time_input
from planboard.models import (
    CalendarItem,
    CalendarItemRequest,
    CalendarItemType,
    FixedCostFrequency,
    ImportanceLevel,
    SchoolItemKind,
)

# Types whose form has no time fields
UNTIMED_TYPES = frozenset(
    {CalendarItemType.FIXED_COST, CalendarItemType.MAIN_MEAL, CalendarItemType.BIRTHDAY}
)


def validate_credentials(username: str, password: str) -> tuple[str, str]:
    """Reject blank credentials locally. Returns the trimmed username and password."""
    if not username.strip() or not password.strip():
        raise ValidationError("Username and password required.")
    return username.strip(), password


@dataclass
class ItemForm:
    """Raw editor input. Text fields hold what the user typed."""

    date: date
    type: CalendarItemType
    title: str
    start_time: str = ""
    end_time: str = ""
    importance: ImportanceLevel = ImportanceLevel.MEDIUM
    log: str = ""
    done: bool = False
    amount: str = ""
    school_kind: SchoolItemKind = SchoolItemKind.LECTURE
    fixed_cost_frequency: FixedCostFrequency = FixedCostFrequency.MONTHLY
    # None derives all-day from blank start and end times
    all_day: bool | None = None

    @classmethod
    def from_item(cls, item: CalendarItem) -> "ItemForm":
        """Load an existing item for editing. Holidays are read-only."""
        if item.is_holiday:
            raise ValidationError("Merkedager/helligdager kan ikke endres.")
        return cls(
            date=item.date,
            type=item.type,
            title=item.title,
            start_time=to_time_input(item.start_time),
            end_time=to_time_input(item.end_time),
            importance=item.importance,
            log=item.log or "",
            done=item.done,
            amount=_format_amount(item.amount),
            school_kind=item.school_kind or SchoolItemKind.LECTURE,
            fixed_cost_frequency=item.fixed_cost_frequency or FixedCostFrequency.MONTHLY,
        )

    @property
    def shows_times(self) -> bool:
        return self.type not in UNTIMED_TYPES

    @property
    def is_compulsory(self) -> bool:
        return self.type == CalendarItemType.SCHOOL and self.school_kind == SchoolItemKind.COMPULSORY

    @property
    def is_all_day(self) -> bool:
        if self.type != CalendarItemType.OTHER:
            return False
        if self.all_day is not None:
            return self.all_day
        return not self.start_time.strip() and not self.end_time.strip()

    def to_request(self) -> CalendarItemRequest:
        """Apply the form rules; raises ValidationError before anything is sent."""
        title = self.title.strip()
        if not title:
            raise ValidationError("Title required.")

        try:
            start = from_time_input(self.start_time)
            end = from_time_input(self.end_time)
        except ValueError as e:
            raise ValidationError(f"Invalid time: {e}") from e

        send_start = self.shows_times and not self.is_compulsory and not self.is_all_day
        log = self.log.strip()

        return CalendarItemRequest(
            date=self.date,
            start_time=start if send_start else None,
            end_time=end if self.shows_times else None,
            type=self.type,
            importance=self.importance if self.is_compulsory else ImportanceLevel.MEDIUM,
            title=title,
            log=log or None,
            done=self.done,
            amount=_parse_amount(self.amount),
            school_kind=self.school_kind if self.type == CalendarItemType.SCHOOL else None,
            fixed_cost_frequency=(
                self.fixed_cost_frequency if self.type == CalendarItemType.FIXED_COST else None
            ),
        )


def _parse_amount(text: str) -> float | None:
    text = text.strip()
    if not text:
        return None
    try:
        amount = float(text)
    except ValueError as e:
        raise ValidationError(f"Invalid amount: {text}") from e
    if amount < 0:
        raise ValidationError("Amount cannot be negative.")
    return amount


def _format_amount(amount: float | None) -> str:
    if amount is None:
        return ""
    return str(int(amount)) if float(amount).is_integer() else str(amount)
