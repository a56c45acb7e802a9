"""View-state aggregators built on top of the adapters."""

from planboard.aggregators.calendar import CalendarAggregator, Toast
from planboard.aggregators.events import PushDispatcher, RefreshPlan, classify
from planboard.aggregators.grid import GridCell, build_month_grid, week_days
from planboard.aggregators.reconcile import remove_item, upsert_item
from planboard.aggregators.workout import WorkoutLibrary

__all__ = [
    "CalendarAggregator",
    "Toast",
    "PushDispatcher",
    "RefreshPlan",
    "classify",
    "GridCell",
    "build_month_grid",
    "week_days",
    "upsert_item",
    "remove_item",
    "WorkoutLibrary",
]
