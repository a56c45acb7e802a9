"""Push message classification and coalesced refresh dispatch."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog

from planboard.adapters.push import PushChannel

logger = structlog.get_logger()

DEFAULT_COALESCE_DELAY = 0.15


@dataclass(frozen=True)
class RefreshPlan:
    """Which views a push message invalidates."""

    notifications: bool = False
    month: bool = False
    day: bool = False


NOTIFICATIONS_ONLY = RefreshPlan(notifications=True)
CALENDAR_ONLY = RefreshPlan(month=True, day=True)
EVERYTHING = RefreshPlan(notifications=True, month=True, day=True)


def classify(message: Any) -> RefreshPlan:
    """Map a push message to the views it invalidates.

    The server broadcasts two shapes:
    - calendar change: ``{eventId, type, userId, itemId, date, occurredAt}``
    - notification: ``{eventId, type, userId, notificationId, ...}``
    Anything else refreshes everything.
    """
    if isinstance(message, dict):
        if "notificationId" in message:
            return NOTIFICATIONS_ONLY
        if "itemId" in message and "date" in message:
            return CALENDAR_ONLY
    return EVERYTHING


class PushDispatcher:
    """Coalesces push messages into refresh passes.

    The first message opens a window of ``delay`` seconds; messages arriving
    while a pass is pending are dropped. When the window closes, the opening
    message is classified and ``refresh`` runs once.
    """

    def __init__(
        self,
        refresh: Callable[[RefreshPlan], Awaitable[None]],
        delay: float = DEFAULT_COALESCE_DELAY,
    ) -> None:
        self._refresh = refresh
        self.delay = delay
        self._pending = False
        self._task: asyncio.Task[None] | None = None
        self.cycles = 0
        self.dropped = 0

    @property
    def pending(self) -> bool:
        return self._pending

    def handle(self, message: Any) -> bool:
        """Accept a message. Returns False if it was coalesced away."""
        if self._pending:
            self.dropped += 1
            return False
        self._pending = True
        self._task = asyncio.ensure_future(self._run(message))
        return True

    async def _run(self, message: Any) -> None:
        await asyncio.sleep(self.delay)
        self._pending = False
        plan = classify(message)
        self.cycles += 1
        logger.debug("Push refresh", plan=plan, dropped=self.dropped)
        await self._refresh(plan)

    async def wait(self) -> None:
        """Wait for the pending pass, if any, to finish."""
        if self._task is not None:
            await self._task

    async def pump(self, channel: PushChannel) -> None:
        """Feed every message from ``channel`` into ``handle`` until cancelled."""
        while True:
            message = await channel.messages.get()
            self.handle(message)

    async def close(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._pending = False
