"""Planboard Command Line Interface."""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from planboard.adapters.api import PlanboardClient
from planboard.adapters.base import (
    AdapterError,
    ApiError,
    SessionInvalidError,
    ValidationError,
)
from planboard.adapters.push import PushChannel
from planboard.aggregators.calendar import CalendarAggregator, Toast
from planboard.aggregators.editor import ItemForm, validate_credentials
from planboard.aggregators.events import RefreshPlan
from planboard.aggregators.grid import grid_weeks, week_days
from planboard.aggregators.reconcile import search_items
from planboard.aggregators.workout import EntryRow, WorkoutLibrary
from planboard.config.logging import configure_logging
from planboard.config.settings import settings
from planboard.dates import from_iso_date, month_label
from planboard.models import (
    CalendarItem,
    CalendarItemType,
    FixedCostFrequency,
    ImportanceLevel,
    SchoolItemKind,
)
from planboard.scheduler import PlanboardScheduler
from planboard.session import FileTokenStore, Session

app = typer.Typer(
    name="planboard",
    help="Planboard - personal planning calendar",
    no_args_is_help=True,
)
console = Console()

TYPE_STYLES = {
    CalendarItemType.SCHOOL: "blue",
    CalendarItemType.WORKOUT: "green",
    CalendarItemType.MAIN_MEAL: "yellow",
    CalendarItemType.JOB: "magenta",
    CalendarItemType.FIXED_COST: "red",
    CalendarItemType.BIRTHDAY: "bright_magenta",
    CalendarItemType.OTHER: "white",
}


@app.callback()
def main() -> None:
    configure_logging(settings.log_level)


def _session() -> Session:
    store = FileTokenStore(settings.session.token_file, settings.session.token_key)
    return Session(
        store,
        on_invalid=lambda: console.print(
            "[red]Session expired. Run `planboard login` again.[/red]"
        ),
    )


def _print_toast(toast: Toast) -> None:
    style = "red" if toast.kind == "error" else "cyan"
    console.print(f"[{style}]{toast.message}[/{style}]")


def _require_login(session: Session) -> None:
    if not session.is_authenticated:
        console.print("[yellow]Not logged in. Run `planboard login`.[/yellow]")
        raise typer.Exit(1)


def _parse_date(value: str | None) -> date:
    if not value:
        return date.today()
    try:
        return from_iso_date(value)
    except ValueError:
        raise typer.BadParameter(f"Expected YYYY-MM-DD, got {value!r}")


def _with_calendar(
    action: Callable[[CalendarAggregator], Awaitable[Any]],
    *,
    today: date | None = None,
    type_filter: CalendarItemType | None = None,
) -> Any:
    """Run ``action`` against a connected aggregator for the stored session."""
    session = _session()
    _require_login(session)

    async def run() -> Any:
        client = PlanboardClient(session.store, settings.api)
        async with CalendarAggregator(
            client,
            session,
            today=today,
            type_filter=type_filter,
            on_toast=_print_toast,
        ) as calendar:
            result = await action(calendar)
            await calendar.settle()
            return result

    result = asyncio.run(run())
    if session.invalidated:
        raise typer.Exit(1)
    return result


def _time_range(item: CalendarItem) -> str:
    if item.start_time and item.end_time:
        return f"{item.start_time:%H:%M}-{item.end_time:%H:%M}"
    if item.start_time:
        return f"{item.start_time:%H:%M}"
    if item.end_time:
        return f"-{item.end_time:%H:%M}"
    return "all day"


def _item_table(title: str, items: list[CalendarItem]) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Time", style="cyan")
    table.add_column("Type")
    table.add_column("Title", style="white")
    table.add_column("Done")
    for it in items:
        style = TYPE_STYLES.get(it.type, "white")
        title_text = it.title[:40]
        if it.amount is not None:
            title_text += f" ({it.amount:g})"
        table.add_row(
            str(it.id),
            _time_range(it),
            f"[{style}]{it.type.value}[/{style}]",
            title_text,
            "✓" if it.done else "",
        )
    return table


# ----------------------------------------------------------------------
# Auth
# ----------------------------------------------------------------------


def _authenticate(register: bool, username: str, password: str) -> None:
    try:
        username, password = validate_credentials(username, password)
    except ValidationError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    session = _session()

    async def run() -> str:
        async with PlanboardClient(session.store, settings.api) as client:
            if register:
                return (await client.register(username, password)).token
            return (await client.login(username, password)).token

    try:
        token = asyncio.run(run())
    except ApiError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)
    except AdapterError:
        console.print("[red]Auth failed.[/red]")
        raise typer.Exit(1)

    session.authenticate(token)
    console.print(f"[green]✓ Logged in as {username}[/green]")


@app.command()
def login(
    username: str = typer.Option(..., prompt=True),
    password: str = typer.Option(..., prompt=True, hide_input=True),
):
    """Log in and store the session token."""
    _authenticate(False, username, password)


@app.command()
def register(
    username: str = typer.Option(..., prompt=True),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
):
    """Create an account and log in."""
    _authenticate(True, username, password)


@app.command()
def logout():
    """Forget the stored session token."""
    _session().logout()
    console.print("[green]✓ Logged out[/green]")


# ----------------------------------------------------------------------
# Calendar views
# ----------------------------------------------------------------------


@app.command()
def month(
    year: Optional[int] = typer.Option(None, help="Year (defaults to current)"),
    month_number: Optional[int] = typer.Option(None, "--month", help="Month 1-12"),
    item_type: Optional[CalendarItemType] = typer.Option(None, "--type", help="Only this item type"),
    density: str = typer.Option(settings.density, help="compact, tablet, detailed or list"),
):
    """Show a month as a calendar grid."""
    today = date.today()
    cursor = date(year or today.year, month_number or today.month, 1)

    async def load(calendar: CalendarAggregator) -> CalendarAggregator:
        calendar.set_cursor_month(cursor)
        await calendar.refresh_all()
        return calendar

    calendar = _with_calendar(load, type_filter=item_type)

    console.print(Panel(month_label(cursor), style="blue"))

    if density == "list":
        items = calendar.month.items if calendar.month else []
        if not items:
            console.print("[yellow]No items this month[/yellow]")
            return
        console.print(_item_table(month_label(cursor), items))
        return

    cells = calendar.month_grid(density)
    table = Table(show_lines=True)
    for name in ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"):
        table.add_column(name, width=14, overflow="fold")

    for week in grid_weeks(cells):
        row = []
        for cell in week:
            if cell.is_empty:
                row.append("")
                continue
            marker = "[bold]" if cell.day == today else ""
            closing = "[/bold]" if marker else ""
            lines = [f"{marker}{cell.day_number}{closing}"]
            dots = " ".join(
                f"[{TYPE_STYLES.get(it.type, 'white')}]●[/]" for it in cell.dots
            )
            if cell.overflow > 0:
                dots += f" +{cell.overflow}"
            if dots:
                lines.append(dots)
            lines.extend(it.title[:12] for it in cell.previews)
            row.append("\n".join(lines))
        table.add_row(*row)

    console.print(table)
    if calendar.unread_count:
        console.print(f"[cyan]{calendar.unread_count} unread notification(s)[/cyan]")


@app.command()
def day(
    target: Optional[str] = typer.Argument(None, help="Date YYYY-MM-DD (defaults to today)"),
    item_type: Optional[CalendarItemType] = typer.Option(None, "--type", help="Only this item type"),
    search: str = typer.Option("", help="Filter by title or log text"),
):
    """List the items of one day."""
    selected = _parse_date(target)

    async def load(calendar: CalendarAggregator) -> list[CalendarItem]:
        await calendar.refresh_day()
        return calendar.day_items or []

    items = _with_calendar(load, today=selected, type_filter=item_type)
    items = search_items(items, search)

    if not items:
        console.print("[yellow]No items found[/yellow]")
        return
    console.print(_item_table(f"{selected:%A %d %B %Y}", items))
    for it in items:
        if it.log:
            console.print(f"  [dim]{it.id}:[/dim] {it.log}")


@app.command()
def week(
    target: Optional[str] = typer.Argument(None, help="Any date in the week (defaults to today)"),
    item_type: Optional[CalendarItemType] = typer.Option(None, "--type", help="Only this item type"),
):
    """Show the Monday-first week containing a date."""
    selected = _parse_date(target)

    async def load(calendar: CalendarAggregator) -> dict[date, list[CalendarItem]]:
        await calendar.refresh_week()
        return calendar.week_items_by_date()

    by_date = _with_calendar(load, today=selected, type_filter=item_type)

    table = Table(title=f"Week of {week_days(selected)[0]:%d.%m.%Y}")
    table.add_column("Day", style="cyan")
    table.add_column("Items", style="white")
    for d in week_days(selected):
        entries = [
            f"[{TYPE_STYLES.get(it.type, 'white')}]{_time_range(it)}[/] {it.title}"
            for it in by_date.get(d, [])
        ]
        table.add_row(f"{d:%a %d.%m}", "\n".join(entries) or "[dim]-[/dim]")
    console.print(table)


# ----------------------------------------------------------------------
# Item editing
# ----------------------------------------------------------------------


def _parse_entries(values: list[str]) -> list[EntryRow]:
    """Parse ``EXERCISE:SETS:REPS[:WEIGHT]`` options into rows."""
    rows = []
    for value in values:
        parts = value.split(":")
        if len(parts) < 3:
            raise typer.BadParameter(f"Expected EXERCISE:SETS:REPS[:WEIGHT], got {value!r}")
        rows.append(
            EntryRow(
                exercise_id=parts[0],
                sets=parts[1],
                reps=parts[2],
                weight=parts[3] if len(parts) > 3 else "",
            )
        )
    return rows


async def _save_workout(
    calendar: CalendarAggregator,
    saved: CalendarItem,
    template: int | None,
    entries: list[EntryRow],
) -> None:
    library = WorkoutLibrary(calendar.client)
    try:
        if template is not None:
            await library.refresh()
            entries = library.entries_from_template(template) + entries
        if entries:
            await library.save_session(saved, entries)
    except SessionInvalidError:
        calendar.session.invalidate()
    except ApiError as e:
        calendar.toast("error", e.message)
    except AdapterError:
        calendar.toast("error", "Failed saving workout session.")


async def _find_item(calendar: CalendarAggregator, item_id: int) -> CalendarItem | None:
    await calendar.refresh_day()
    for it in calendar.day_items or []:
        if it.id == item_id:
            return it
    calendar.toast("error", f"No item {item_id} on {calendar.selected_date.isoformat()}.")
    return None


@app.command()
def add(
    title: str = typer.Option(..., help="Item title"),
    item_type: CalendarItemType = typer.Option(CalendarItemType.OTHER, "--type"),
    on: Optional[str] = typer.Option(None, "--date", help="Date YYYY-MM-DD (defaults to today)"),
    start: str = typer.Option("", help="Start time HH:MM"),
    end: str = typer.Option("", help="End time HH:MM"),
    importance: ImportanceLevel = typer.Option(ImportanceLevel.MEDIUM),
    log: str = typer.Option("", help="Free-text log"),
    amount: str = typer.Option("", help="Amount (fixed costs, meals)"),
    school_kind: SchoolItemKind = typer.Option(SchoolItemKind.LECTURE),
    frequency: FixedCostFrequency = typer.Option(FixedCostFrequency.MONTHLY),
    all_day: bool = typer.Option(False, "--all-day"),
    done: bool = typer.Option(False, "--done"),
    template: Optional[int] = typer.Option(None, help="Workout template to copy entries from"),
    entry: list[str] = typer.Option([], help="Workout entry EXERCISE:SETS:REPS[:WEIGHT]"),
):
    """Create a calendar item."""
    target = _parse_date(on)
    form = ItemForm(
        date=target,
        type=item_type,
        title=title,
        start_time=start,
        end_time=end,
        importance=importance,
        log=log,
        done=done,
        amount=amount,
        school_kind=school_kind,
        fixed_cost_frequency=frequency,
        all_day=all_day or None,
    )
    try:
        payload = form.to_request()
    except ValidationError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)
    rows = _parse_entries(entry)

    async def save(calendar: CalendarAggregator) -> CalendarItem | None:
        saved = await calendar.create_or_update(payload)
        if saved is not None and saved.type == CalendarItemType.WORKOUT:
            await _save_workout(calendar, saved, template, rows)
        return saved

    saved = _with_calendar(save, today=target)
    if saved is None:
        raise typer.Exit(1)
    console.print(f"[green]✓ Created #{saved.id} {saved.title}[/green]")


@app.command()
def edit(
    item_id: int = typer.Argument(..., help="Item ID"),
    on: Optional[str] = typer.Option(None, "--date", help="Current date of the item"),
    title: Optional[str] = typer.Option(None),
    move_to: Optional[str] = typer.Option(None, "--move-to", help="New date YYYY-MM-DD"),
    start: Optional[str] = typer.Option(None, help="Start time HH:MM (empty clears)"),
    end: Optional[str] = typer.Option(None, help="End time HH:MM (empty clears)"),
    importance: Optional[ImportanceLevel] = typer.Option(None),
    log: Optional[str] = typer.Option(None),
    amount: Optional[str] = typer.Option(None),
    template: Optional[int] = typer.Option(None, help="Workout template to copy entries from"),
    entry: list[str] = typer.Option([], help="Workout entry EXERCISE:SETS:REPS[:WEIGHT]"),
):
    """Edit an existing calendar item."""
    current = _parse_date(on)
    new_date = _parse_date(move_to) if move_to else None
    rows = _parse_entries(entry)

    async def update(calendar: CalendarAggregator) -> CalendarItem | None:
        item = await _find_item(calendar, item_id)
        if item is None:
            return None
        try:
            form = ItemForm.from_item(item)
        except ValidationError as e:
            calendar.toast("info", e.message)
            return None

        for name, value in (
            ("title", title),
            ("start_time", start),
            ("end_time", end),
            ("importance", importance),
            ("log", log),
            ("amount", amount),
            ("date", new_date),
        ):
            if value is not None:
                setattr(form, name, value)

        try:
            payload = form.to_request()
        except ValidationError as e:
            calendar.toast("error", e.message)
            return None

        saved = await calendar.create_or_update(payload, item.id)
        if saved is not None and saved.type == CalendarItemType.WORKOUT:
            await _save_workout(calendar, saved, template, rows)
        return saved

    saved = _with_calendar(update, today=current)
    if saved is None:
        raise typer.Exit(1)
    console.print(f"[green]✓ Updated #{saved.id} {saved.title}[/green]")


@app.command()
def delete(item_id: int = typer.Argument(..., help="Item ID")):
    """Delete a calendar item."""

    async def remove(calendar: CalendarAggregator) -> bool:
        return await calendar.delete(item_id)

    if not _with_calendar(remove):
        raise typer.Exit(1)
    console.print(f"[green]✓ Deleted #{item_id}[/green]")


@app.command()
def done(
    item_id: int = typer.Argument(..., help="Item ID"),
    on: Optional[str] = typer.Option(None, "--date", help="Date of the item"),
    undo: bool = typer.Option(False, "--undo", help="Mark as not done"),
):
    """Mark an item as done (or not done)."""

    async def toggle(calendar: CalendarAggregator) -> CalendarItem | None:
        item = await _find_item(calendar, item_id)
        if item is None:
            return None
        return await calendar.toggle_done(item, not undo)

    updated = _with_calendar(toggle, today=_parse_date(on))
    if updated is None:
        raise typer.Exit(1)
    state = "done" if updated.done else "not done"
    console.print(f"[green]✓ #{updated.id} marked {state}[/green]")


# ----------------------------------------------------------------------
# Notifications
# ----------------------------------------------------------------------


@app.command()
def notifications(show_all: bool = typer.Option(False, "--all", help="Include read ones")):
    """List notifications."""

    async def load(calendar: CalendarAggregator) -> list[Any]:
        if show_all:
            return await calendar.client.list_all_notifications()
        await calendar.refresh_notifications()
        return calendar.notifications

    try:
        items = _with_calendar(load)
    except SessionInvalidError:
        _session().invalidate()
        raise typer.Exit(1)
    except AdapterError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    if not items:
        console.print("[yellow]No notifications[/yellow]")
        return

    table = Table(title="Notifications")
    table.add_column("ID", style="dim")
    table.add_column("When", style="cyan")
    table.add_column("Type")
    table.add_column("Message", style="white")
    table.add_column("Read")
    for n in items:
        when = n.created_at.strftime("%Y-%m-%d %H:%M") if n.created_at else ""
        table.add_row(str(n.id), when, n.type.value, n.message, "✓" if n.read else "")
    console.print(table)


@app.command()
def read(notification_id: int = typer.Argument(..., help="Notification ID")):
    """Mark a notification as read."""

    async def mark(calendar: CalendarAggregator) -> int:
        await calendar.mark_read(notification_id)
        return calendar.unread_count

    remaining = _with_calendar(mark)
    console.print(f"[green]✓ Marked read[/green] ({remaining} unread)")


# ----------------------------------------------------------------------
# Workout library
# ----------------------------------------------------------------------


def _with_library(action: Callable[[WorkoutLibrary], Awaitable[Any]]) -> Any:
    session = _session()
    _require_login(session)

    async def run() -> Any:
        async with PlanboardClient(session.store, settings.api) as client:
            return await action(WorkoutLibrary(client))

    try:
        return asyncio.run(run())
    except SessionInvalidError:
        session.invalidate()
        raise typer.Exit(1)
    except ApiError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)
    except AdapterError:
        console.print("[red]Request failed.[/red]")
        raise typer.Exit(1)


@app.command()
def exercises():
    """List workout exercises."""

    async def load(library: WorkoutLibrary) -> WorkoutLibrary:
        await library.refresh()
        return library

    library = _with_library(load)
    if not library.exercises:
        console.print("[yellow]No exercises yet[/yellow]")
        return
    table = Table(title="Exercises")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="white")
    for ex in library.exercises:
        table.add_row(str(ex.id), ex.name)
    console.print(table)


@app.command("exercise-add")
def exercise_add(name: str = typer.Argument(..., help="Exercise name")):
    """Add a workout exercise."""
    if not name.strip():
        console.print("[red]Name required.[/red]")
        raise typer.Exit(1)

    async def create(library: WorkoutLibrary) -> Any:
        return await library.add_exercise(name)

    exercise = _with_library(create)
    console.print(f"[green]✓ Added exercise #{exercise.id} {exercise.name}[/green]")


@app.command("exercise-rm")
def exercise_rm(exercise_id: int = typer.Argument(..., help="Exercise ID")):
    """Delete a workout exercise."""

    async def remove(library: WorkoutLibrary) -> None:
        await library.remove_exercise(exercise_id)

    _with_library(remove)
    console.print(f"[green]✓ Deleted exercise #{exercise_id}[/green]")


@app.command()
def templates():
    """List workout templates."""

    async def load(library: WorkoutLibrary) -> WorkoutLibrary:
        await library.refresh()
        return library

    library = _with_library(load)
    if not library.templates:
        console.print("[yellow]No templates yet[/yellow]")
        return
    for tpl in library.templates:
        console.print(f"\n[cyan]#{tpl.id} {tpl.title}[/cyan]")
        for e in tpl.entries:
            name = e.exercise_name or library.exercise_name(e.exercise_id)
            weight = f" @ {e.weight:g}" if e.weight is not None else ""
            console.print(f"  • {name}: {e.sets}x{e.reps}{weight}")


@app.command("template-save")
def template_save(
    title: str = typer.Argument(..., help="Template title"),
    entry: list[str] = typer.Option([], help="Entry EXERCISE:SETS:REPS[:WEIGHT]"),
    template_id: Optional[int] = typer.Option(None, "--id", help="Update this template"),
):
    """Create or replace a workout template."""
    if not title.strip():
        console.print("[red]Title required.[/red]")
        raise typer.Exit(1)
    rows = _parse_entries(entry)

    async def save(library: WorkoutLibrary) -> Any:
        return await library.save_template(title, rows, template_id)

    tpl = _with_library(save)
    console.print(f"[green]✓ Saved template #{tpl.id} {tpl.title}[/green]")


@app.command("template-rm")
def template_rm(template_id: int = typer.Argument(..., help="Template ID")):
    """Delete a workout template."""

    async def remove(library: WorkoutLibrary) -> None:
        await library.remove_template(template_id)

    _with_library(remove)
    console.print(f"[green]✓ Deleted template #{template_id}[/green]")


@app.command()
def session(calendar_item_id: int = typer.Argument(..., help="Workout item ID")):
    """Show the logged exercises of a workout item."""

    async def load(library: WorkoutLibrary) -> Any:
        await library.refresh()
        return library, await library.client.get_session(calendar_item_id)

    library, workout = _with_library(load)
    if not workout.entries:
        console.print("[yellow]No exercises logged[/yellow]")
        return
    table = Table(title=f"Workout #{calendar_item_id}")
    table.add_column("Exercise", style="cyan")
    table.add_column("Sets")
    table.add_column("Reps")
    table.add_column("Weight")
    for e in workout.entries:
        table.add_row(
            e.exercise_name or library.exercise_name(e.exercise_id),
            str(e.sets),
            str(e.reps),
            f"{e.weight:g}" if e.weight is not None else "",
        )
    console.print(table)


# ----------------------------------------------------------------------
# Live
# ----------------------------------------------------------------------


@app.command()
def watch():
    """Follow live changes over the push channel until interrupted."""
    if not settings.push.enabled:
        console.print("[yellow]Push channel disabled (PLANBOARD_PUSH_ENABLED=false)[/yellow]")
        raise typer.Exit(1)

    session_ = _session()
    _require_login(session_)
    url = settings.push_url()
    console.print(Panel(f"Watching {url}", style="blue"))

    async def run() -> None:
        client = PlanboardClient(session_.store, settings.api)
        async with CalendarAggregator(
            client, session_, on_toast=_print_toast
        ) as calendar:
            await calendar.refresh_all()
            console.print(
                f"{len(calendar.day_items or [])} item(s) today, "
                f"{calendar.unread_count} unread notification(s)"
            )

            async def on_refresh(plan: RefreshPlan) -> None:
                await calendar.apply_push(plan)
                parts = []
                if plan.month or plan.day:
                    parts.append(f"{len(calendar.day_items or [])} item(s) today")
                if plan.notifications:
                    parts.append(f"{calendar.unread_count} unread")
                console.print(f"[cyan]↻ {', '.join(parts)}[/cyan]")
                for n in calendar.notifications[:3]:
                    console.print(f"  • {n.message}")

            channel = PushChannel(url, reconnect_delay=settings.push.reconnect_delay)
            calendar.start_push(channel, settings.push.coalesce_delay, refresh=on_refresh)
            scheduler = PlanboardScheduler(calendar, settings.notification_poll_seconds)
            scheduler.start()
            try:
                while not session_.invalidated:
                    await asyncio.sleep(1)
            finally:
                scheduler.stop()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped[/dim]")


@app.command()
def version():
    """Show Planboard version."""
    from planboard import __version__

    console.print(f"Planboard v{__version__}")


if __name__ == "__main__":
    app()
