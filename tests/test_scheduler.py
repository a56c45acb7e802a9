"""Tests for periodic jobs."""

from planboard.scheduler import PlanboardScheduler


class _Aggregator:
    def __init__(self) -> None:
        self.unread_count = 0
        self.refreshes = 0

    async def refresh_notifications(self) -> None:
        self.refreshes += 1
        self.unread_count = 2


async def test_poll_job_registered():
    scheduler = PlanboardScheduler(_Aggregator(), poll_seconds=20)
    scheduler.start()
    try:
        job = scheduler.scheduler.get_job("notification_poll")
        assert job is not None
        assert job.trigger.interval.total_seconds() == 20
    finally:
        scheduler.stop()


async def test_poll_refreshes_notifications():
    aggregator = _Aggregator()
    scheduler = PlanboardScheduler(aggregator)
    await scheduler._poll_notifications()
    assert aggregator.refreshes == 1
