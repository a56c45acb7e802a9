"""Wire models for the planning API.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import date, datetime, time
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

HOLIDAY_PREFIXES = ("Merkedag:", "Helligdag:")


class CalendarItemType(str, Enum):
    SCHOOL = "SCHOOL"
    WORKOUT = "WORKOUT"
    MAIN_MEAL = "MAIN_MEAL"
    JOB = "JOB"
    FIXED_COST = "FIXED_COST"
    BIRTHDAY = "BIRTHDAY"
    OTHER = "OTHER"


class ImportanceLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class SchoolItemKind(str, Enum):
    LECTURE = "LECTURE"
    COMPULSORY = "COMPULSORY"


class FixedCostFrequency(str, Enum):
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class NotificationType(str, Enum):
    ITEM_CREATED = "ITEM_CREATED"
    ITEM_UPDATED = "ITEM_UPDATED"
    ITEM_DELETED = "ITEM_DELETED"
    UPCOMING = "UPCOMING"


class WireModel(BaseModel):
    """Base for all API payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize for a request body, dropping unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AuthToken(WireModel):
    token: str


class CalendarItem(WireModel):
    """A single dated planning entry."""

    id: int
    date: date
    start_time: time | None = None
    end_time: time | None = None
    type: CalendarItemType
    importance: ImportanceLevel = ImportanceLevel.MEDIUM
    title: str
    log: str | None = None
    done: bool = False
    amount: float | None = None
    school_kind: SchoolItemKind | None = None
    fixed_cost_frequency: FixedCostFrequency | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def sort_key(self) -> tuple[str, str, int]:
        """Display order: date, then start time (untimed first), then id."""
        start = self.start_time.isoformat() if self.start_time else ""
        return (self.date.isoformat(), start, self.id)

    @property
    def is_holiday(self) -> bool:
        """Server-generated public holiday / observance entries."""
        return self.type == CalendarItemType.OTHER and self.title.startswith(HOLIDAY_PREFIXES)


class CalendarItemRequest(WireModel):
    """Body for both create and update."""

    date: date
    start_time: time | None = None
    end_time: time | None = None
    type: CalendarItemType
    importance: ImportanceLevel = ImportanceLevel.MEDIUM
    title: str
    log: str | None = None
    done: bool | None = None
    amount: float | None = None
    school_kind: SchoolItemKind | None = None
    fixed_cost_frequency: FixedCostFrequency | None = None

    @classmethod
    def from_item(cls, item: CalendarItem, **changes: Any) -> "CalendarItemRequest":
        """Build a request that re-submits an existing item with changes applied."""
        data = item.model_dump(
            include={
                "date",
                "start_time",
                "end_time",
                "type",
                "importance",
                "title",
                "log",
                "done",
                "amount",
                "school_kind",
                "fixed_cost_frequency",
            }
        )
        data.update(changes)
        return cls(**data)


class CalendarMonth(WireModel):
    year: int
    month: int
    items: list[CalendarItem] = Field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def contains(self, day: date) -> bool:
        return day.year == self.year and day.month == self.month


class Notification(WireModel):
    id: int
    type: NotificationType
    importance: ImportanceLevel = ImportanceLevel.MEDIUM
    message: str
    calendar_item_id: int | None = None
    read: bool = False
    created_at: datetime | None = None


class Exercise(WireModel):
    id: int
    name: str


class WorkoutEntry(WireModel):
    exercise_id: int
    exercise_name: str | None = None
    sets: int
    reps: int
    weight: float | None = None


class WorkoutEntryRequest(WireModel):
    exercise_id: int
    sets: int
    reps: int
    weight: float | None = None


class WorkoutTemplate(WireModel):
    id: int
    title: str
    entries: list[WorkoutEntry] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class WorkoutTemplateRequest(WireModel):
    title: str
    entries: list[WorkoutEntryRequest] = Field(default_factory=list)


class WorkoutSession(WireModel):
    calendar_item_id: int
    entries: list[WorkoutEntry] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
