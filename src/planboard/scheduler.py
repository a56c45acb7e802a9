"""Periodic jobs for a running session."""

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from planboard.aggregators.calendar import CalendarAggregator

logger = structlog.get_logger()


class PlanboardScheduler:
    """Polls unread notifications on a fixed interval.

    Push messages cover most changes; polling catches notifications created
    server-side (upcoming reminders) while the push channel is down.
    """

    def __init__(self, aggregator: CalendarAggregator, poll_seconds: float = 20.0) -> None:
        self.aggregator = aggregator
        self.poll_seconds = poll_seconds
        self.scheduler = AsyncIOScheduler()
        self._setup_jobs()

    def _setup_jobs(self) -> None:
        """Configure all scheduled jobs."""
        self.scheduler.add_job(
            self._poll_notifications,
            IntervalTrigger(seconds=self.poll_seconds),
            id="notification_poll",
            name="Notification Poll",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.debug("Scheduled jobs configured", poll_seconds=self.poll_seconds)

    async def _poll_notifications(self) -> None:
        before = self.aggregator.unread_count
        await self.aggregator.refresh_notifications()
        after = self.aggregator.unread_count
        if after != before:
            logger.info("Unread notifications changed", before=before, after=after)

    def start(self) -> None:
        """Start the scheduler. Must be called with a running event loop."""
        self.scheduler.start()
        logger.debug("Scheduler started")

    def stop(self) -> None:
        """Stop the scheduler."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.debug("Scheduler stopped")
