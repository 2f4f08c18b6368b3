"""Periodic refresh triggers.

ForegroundTicker refreshes the current selection on a short fixed interval
while the service is running. BackgroundRefresher runs budgeted cycles for the
default selection on a long interval; a cycle that overruns its budget or is
expired explicitly is cancelled and reported as unsuccessful.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence

from fxcache.models import RefreshOutcome
from fxcache.services.rates.refresh import RateRefreshService

logger = logging.getLogger("fxcache.scheduler")

SUCCESS_OUTCOMES = {RefreshOutcome.UPDATED, RefreshOutcome.PARTIAL}


class ForegroundTicker:
    def __init__(
        self,
        service: RateRefreshService,
        interval_seconds: float = 60.0,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ):
        self._service = service
        self._interval = interval_seconds
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        while True:
            await self._sleep(self._interval)
            self.ticks += 1
            if self._service.is_fetching:
                logger.debug("tick skipped; refresh already in flight")
                continue
            await self._service.refresh_now()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="fxcache-foreground-ticker")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


class BackgroundRefresher:
    def __init__(
        self,
        service: RateRefreshService,
        codes: Sequence[str],
        budget_seconds: float = 25.0,
        interval_seconds: float = 15 * 60.0,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ):
        self._service = service
        self._codes: List[str] = list(codes)
        self._budget = budget_seconds
        self._interval = interval_seconds
        self._sleep = sleep
        self._current: Optional[asyncio.Task] = None

    def expire(self) -> bool:
        """Cancel the cycle in flight, if any. Returns whether one was running."""
        if self._current is None or self._current.done():
            return False
        logger.warning("background refresh expired; cancelling")
        self._current.cancel()
        return True

    async def run_once(self) -> bool:
        task = asyncio.create_task(self._service.refresh_now(codes=self._codes))
        self._current = task
        try:
            outcome = await asyncio.wait_for(task, self._budget)
        except asyncio.TimeoutError:
            logger.warning("background refresh exceeded budget=%.1fs", self._budget)
            return False
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            return False
        finally:
            self._current = None
        logger.info("background refresh outcome=%s", outcome.value)
        return outcome in SUCCESS_OUTCOMES

    async def run_forever(self) -> None:
        while True:
            await self._sleep(self._interval)
            await self.run_once()
