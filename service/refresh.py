"""
Refresh Scheduler
=================

Two periodic timers owned by the service process:

- countdown tick (1 s): recomputes the next-draw countdown per lottery
- refresh tick (minutes): re-runs acquisition for every lottery

Each timer is its own asyncio task and can be cancelled without
affecting the other.
"""

from __future__ import annotations
from typing import Awaitable, Callable, Dict, Iterable, Optional
import asyncio
import logging

from prediction.registry import LotteryId, parse_lottery_id

from .facade import AnimalitoService, RefreshReport

logger = logging.getLogger(__name__)

CountdownListener = Callable[[Dict[LotteryId, str]], None]
Sleeper = Callable[[float], Awaitable[None]]


class RefreshScheduler:
    """Owns the countdown and refresh tasks for a service."""

    def __init__(
        self,
        service: AnimalitoService,
        lotteries: Iterable = tuple(LotteryId),
        countdown_interval: float = 1.0,
        refresh_interval: float = 300.0,
        refresh_on_start: bool = True,
        on_countdown: Optional[CountdownListener] = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        self._service = service
        self._lotteries = tuple(parse_lottery_id(l) for l in lotteries)
        self._countdown_interval = countdown_interval
        self._refresh_interval = refresh_interval
        self._refresh_on_start = refresh_on_start
        self._on_countdown = on_countdown
        self._sleep = sleep

        self._countdown_task: Optional[asyncio.Task] = None
        self._refresh_task: Optional[asyncio.Task] = None
        self._countdowns: Dict[LotteryId, str] = {}
        self._last_reports: Dict[LotteryId, RefreshReport] = {}
        self.countdown_ticks = 0
        self.refresh_cycles = 0

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def countdowns(self) -> Dict[LotteryId, str]:
        return dict(self._countdowns)

    @property
    def last_reports(self) -> Dict[LotteryId, RefreshReport]:
        return dict(self._last_reports)

    @property
    def countdown_running(self) -> bool:
        return self._countdown_task is not None and not self._countdown_task.done()

    @property
    def refresh_running(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    # =========================================================================
    # TICKS
    # =========================================================================

    def tick_countdown(self) -> Dict[LotteryId, str]:
        self._countdowns = {lottery: self._service.countdown(lottery) for lottery in self._lotteries}
        self.countdown_ticks += 1
        if self._on_countdown is not None:
            self._on_countdown(dict(self._countdowns))
        return self._countdowns

    async def refresh_all(self) -> Dict[LotteryId, RefreshReport]:
        """One refresh cycle. Lotteries are refreshed one after another."""
        for lottery in self._lotteries:
            try:
                self._last_reports[lottery] = await self._service.refresh(lottery)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Refresh cycle failed for %s", lottery.value)
        self.refresh_cycles += 1
        return dict(self._last_reports)

    async def _countdown_loop(self) -> None:
        while True:
            try:
                self.tick_countdown()
            except Exception:
                logger.exception("Countdown tick failed")
            await self._sleep(self._countdown_interval)

    async def _refresh_loop(self) -> None:
        if not self._refresh_on_start:
            await self._sleep(self._refresh_interval)
        while True:
            await self.refresh_all()
            await self._sleep(self._refresh_interval)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        """Start both timers on the running loop. Idempotent."""
        if not self.countdown_running:
            self._countdown_task = asyncio.create_task(self._countdown_loop(), name="animalito-countdown")
        if not self.refresh_running:
            self._refresh_task = asyncio.create_task(self._refresh_loop(), name="animalito-refresh")
        logger.info("Refresh scheduler started (countdown %.1fs, refresh %.0fs)",
                    self._countdown_interval, self._refresh_interval)

    async def cancel_countdown(self) -> None:
        await self._cancel(self._countdown_task)
        self._countdown_task = None

    async def cancel_refresh(self) -> None:
        await self._cancel(self._refresh_task)
        self._refresh_task = None

    async def stop(self) -> None:
        await self.cancel_countdown()
        await self.cancel_refresh()
        logger.info("Refresh scheduler stopped")

    @staticmethod
    async def _cancel(task: Optional[asyncio.Task]) -> None:
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
