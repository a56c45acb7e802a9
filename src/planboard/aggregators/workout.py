"""Workout library: exercises, templates and per-item sessions."""

import asyncio
from dataclasses import dataclass

import structlog

from planboard.adapters.api import PlanboardClient
from planboard.models import (
    CalendarItem,
    CalendarItemType,
    Exercise,
    WorkoutEntry,
    WorkoutEntryRequest,
    WorkoutSession,
    WorkoutTemplate,
    WorkoutTemplateRequest,
)

logger = structlog.get_logger()


@dataclass
class EntryRow:
    """Editable text form of one workout entry."""

    exercise_id: str = ""
    sets: str = "3"
    reps: str = "10"
    weight: str = ""

    @classmethod
    def from_entry(cls, entry: WorkoutEntry) -> "EntryRow":
        return cls(
            exercise_id=str(entry.exercise_id),
            sets=str(entry.sets),
            reps=str(entry.reps),
            weight=_format_number(entry.weight) if entry.weight is not None else "",
        )


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _to_int(text: str) -> int | None:
    try:
        return int(text.strip())
    except ValueError:
        return None


def _to_float(text: str) -> float | None:
    text = text.strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def to_request_entries(rows: list[EntryRow]) -> list[WorkoutEntryRequest]:
    """Convert rows to request entries, skipping rows that are not numeric."""
    entries = []
    for row in rows:
        exercise_id, sets, reps = _to_int(row.exercise_id), _to_int(row.sets), _to_int(row.reps)
        if exercise_id is None or sets is None or reps is None:
            continue
        entries.append(
            WorkoutEntryRequest(
                exercise_id=exercise_id,
                sets=sets,
                reps=reps,
                weight=_to_float(row.weight),
            )
        )
    return entries


def add_exercise_row(rows: list[EntryRow], exercise_id: int) -> list[EntryRow]:
    """Append a default 3x10 row unless the exercise is already listed."""
    key = str(exercise_id)
    if any(r.exercise_id == key for r in rows):
        return rows
    return [*rows, EntryRow(exercise_id=key)]


class WorkoutLibrary:
    """Cached exercises and templates for the workout editor."""

    def __init__(self, client: PlanboardClient) -> None:
        self.client = client
        self.exercises: list[Exercise] = []
        self.templates: list[WorkoutTemplate] = []

    async def refresh(self) -> None:
        """Fetch exercises and templates concurrently."""
        self.exercises, self.templates = await asyncio.gather(
            self.client.list_exercises(),
            self.client.list_templates(),
        )
        logger.debug(
            "Workout library loaded",
            exercises=len(self.exercises),
            templates=len(self.templates),
        )

    def exercise_name(self, exercise_id: int) -> str:
        for exercise in self.exercises:
            if exercise.id == exercise_id:
                return exercise.name
        return f"#{exercise_id}"

    def entries_from_template(self, template_id: int) -> list[EntryRow]:
        for template in self.templates:
            if template.id == template_id:
                return [EntryRow.from_entry(e) for e in template.entries]
        return []

    async def add_exercise(self, name: str) -> Exercise:
        exercise = await self.client.create_exercise(name.strip())
        self.exercises = [*self.exercises, exercise]
        return exercise

    async def remove_exercise(self, exercise_id: int) -> None:
        await self.client.delete_exercise(exercise_id)
        self.exercises = [e for e in self.exercises if e.id != exercise_id]

    async def save_template(
        self, title: str, rows: list[EntryRow], template_id: int | None = None
    ) -> WorkoutTemplate:
        payload = WorkoutTemplateRequest(title=title.strip(), entries=to_request_entries(rows))
        if template_id is None:
            template = await self.client.create_template(payload)
        else:
            template = await self.client.update_template(template_id, payload)
        self.templates = [t for t in self.templates if t.id != template.id] + [template]
        return template

    async def remove_template(self, template_id: int) -> None:
        await self.client.delete_template(template_id)
        self.templates = [t for t in self.templates if t.id != template_id]

    async def load_session(self, item: CalendarItem) -> list[EntryRow]:
        session = await self.client.get_session(item.id)
        return [EntryRow.from_entry(e) for e in session.entries]

    async def save_session(self, item: CalendarItem, rows: list[EntryRow]) -> WorkoutSession | None:
        """Store the session rows for a workout item; other types are ignored."""
        if item.type != CalendarItemType.WORKOUT:
            return None
        return await self.client.update_session(item.id, to_request_entries(rows))
