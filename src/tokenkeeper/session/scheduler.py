"""Owned, cancellable renewal timer.

Pattern: Single Pending Timer
------------------------------
A session has at most one pending renewal.  ``arm()`` cancels whatever was
pending before starting a new ``asyncio.Task`` that sleeps for the computed
delay and then runs the renewal callback; ``cancel()`` drops it.  The task
is stored on the scheduler, so disposing the session manager cancels all
deferred work deterministically instead of leaving an untracked
fire-and-forget timer behind.

When the timer fires it detaches itself before running the callback.  The
callback usually commits a new credential pair, which re-arms the scheduler;
detaching first means that re-arm starts a fresh task rather than cancelling
the one that is still running the callback.  The detached task is still
tracked, and ``close()`` cancels it along with the pending timer.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class RenewalScheduler:
    """Runs *on_fire* once, *delay* seconds after the latest ``arm()``."""

    def __init__(self, on_fire: Callable[[], Awaitable[None]]) -> None:
        self._on_fire = on_fire
        self._task: asyncio.Task[None] | None = None
        self._running: asyncio.Task[None] | None = None
        self._delay: float | None = None

    @property
    def is_armed(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending_delay(self) -> float | None:
        """Delay the pending timer was armed with, ``None`` when idle."""
        return self._delay if self.is_armed else None

    def arm(self, delay: float) -> None:
        """Replace any pending timer with one that fires after *delay* seconds.

        A non-positive delay fires on the next loop iteration.
        """
        self.cancel()
        delay = max(delay, 0.0)
        self._delay = delay
        self._task = asyncio.get_running_loop().create_task(self._run(delay))
        logger.debug("Renewal armed: fires in %.1fs", delay)

    def cancel(self) -> None:
        """Drop the pending timer; a renewal that is already running is left alone."""
        if self._task is not None:
            if not self._task.done():
                self._task.cancel()
                logger.debug("Pending renewal cancelled")
            self._task = None
        self._delay = None

    def close(self) -> None:
        """Cancel the pending timer and any renewal that is already running."""
        self.cancel()
        if self._running is not None:
            if not self._running.done():
                self._running.cancel()
                logger.debug("Running renewal cancelled")
            self._running = None

    # -- private helpers -----------------------------------------------------

    async def _run(self, delay: float) -> None:
        await asyncio.sleep(delay)
        running = asyncio.current_task()
        self._running = running
        self._task = None
        self._delay = None
        try:
            await self._on_fire()
        finally:
            if self._running is running:
                self._running = None
