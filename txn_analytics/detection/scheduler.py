"""
Interval scheduler for alert cycles and retention cleanup.

This module provides the AlertScheduler, which drives AlertEngine.run_cycle()
on a fixed interval (default hourly) and retention cleanup on a second
interval (default daily). Both timers share one asyncio lock so a cleanup
never runs while a cycle is reading or writing alert history.

A failed tick is logged and the scheduler simply waits for the next one;
there is no retry inside the scheduler.

Example:
    >>> scheduler = AlertScheduler(engine, alert_store, retention_days=30)
    >>> scheduler.start()
    >>> ...
    >>> await scheduler.stop()
"""

import asyncio
from datetime import datetime
from typing import Callable, List, Optional

import structlog

from txn_analytics.detection.engine import AlertEngine
from txn_analytics.detection.retention import purge_expired_alerts
from txn_analytics.interfaces.stores import AlertSink
from txn_analytics.models.alerts import Alert

logger = structlog.get_logger(__name__)


class AlertScheduler:
    """
    Runs alert cycles and cleanups on independent timers.

    Attributes:
        engine: AlertEngine invoked each cycle tick.
        sink: AlertSink purged each cleanup tick.
        retention_days: Retention window passed to the cleanup.
        cycle_interval: Seconds between alert cycles.
        cleanup_interval: Seconds between cleanups.
        run_on_start: Whether to run one cycle immediately on start.
        stop_timeout: Seconds stop() waits for the timers to exit on their own.
    """

    def __init__(
        self,
        engine: AlertEngine,
        sink: AlertSink,
        retention_days: int = 30,
        cycle_interval: float = 3600,
        cleanup_interval: float = 86400,
        run_on_start: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
        stop_timeout: float = 30,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            engine: AlertEngine to drive.
            sink: AlertSink to purge.
            retention_days: Alerts older than this are deleted (default: 30).
            cycle_interval: Seconds between alert cycles (default: 3600).
            cleanup_interval: Seconds between cleanups (default: 86400).
            run_on_start: Run one alert cycle immediately on start.
            clock: Optional source of "now" passed to each run; defaults to
                the engine's own UTC clock.
            stop_timeout: Seconds stop() waits for the timers before
                cancelling them (default: 30).

        Raises:
            ValueError: If an interval is not positive.
        """
        if cycle_interval <= 0 or cleanup_interval <= 0:
            raise ValueError("Scheduler intervals must be positive")

        self.engine = engine
        self.sink = sink
        self.retention_days = retention_days
        self.cycle_interval = cycle_interval
        self.cleanup_interval = cleanup_interval
        self.run_on_start = run_on_start
        self.stop_timeout = stop_timeout
        self._clock = clock

        self._lock = asyncio.Lock()
        self._shutdown_event = asyncio.Event()
        self._tasks: List[asyncio.Task] = []
        self._cycle_task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        """True while the timer tasks are alive."""
        return any(not task.done() for task in self._tasks)

    def _now(self) -> Optional[datetime]:
        return self._clock() if self._clock is not None else None

    async def run_alert_cycle_once(self) -> Optional[List[Alert]]:
        """
        Run one alert cycle under the shared lock.

        The cycle runs in its own shielded task, so cancelling the caller
        never interrupts it between two writes.

        Returns:
            The emitted alerts, or None if the cycle aborted.
        """
        async with self._lock:
            cycle = asyncio.create_task(
                self.engine.run_cycle(now=self._now()), name="alert-cycle-run"
            )
            self._cycle_task = cycle
            try:
                return await asyncio.shield(cycle)
            except Exception as e:
                logger.error("scheduled_alert_cycle_failed", error=str(e))
                return None

    async def run_cleanup_once(self) -> Optional[int]:
        """
        Run one retention cleanup under the shared lock.

        Returns:
            Number of deleted alerts, or None if the cleanup failed.
        """
        async with self._lock:
            try:
                return await purge_expired_alerts(
                    self.sink, self.retention_days, now=self._now()
                )
            except Exception as e:
                logger.error("scheduled_cleanup_failed", error=str(e))
                return None

    async def _wait_or_shutdown(self, interval: float) -> bool:
        """Sleep for `interval`; return True if shutdown was requested."""
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=interval)
            return True
        except asyncio.TimeoutError:
            return False

    async def _cycle_loop(self) -> None:
        try:
            if self.run_on_start:
                await self.run_alert_cycle_once()
            while not self._shutdown_event.is_set():
                if await self._wait_or_shutdown(self.cycle_interval):
                    break
                await self.run_alert_cycle_once()
        except asyncio.CancelledError:
            logger.debug("alert_cycle_loop_cancelled")

    async def _cleanup_loop(self) -> None:
        try:
            while not self._shutdown_event.is_set():
                if await self._wait_or_shutdown(self.cleanup_interval):
                    break
                await self.run_cleanup_once()
        except asyncio.CancelledError:
            logger.debug("cleanup_loop_cancelled")

    def start(self) -> None:
        """
        Start both timers on the running event loop.

        Raises:
            RuntimeError: If the scheduler is already running.
        """
        if self.is_running:
            raise RuntimeError("Scheduler already running")

        self._shutdown_event.clear()
        self._tasks = [
            asyncio.create_task(self._cycle_loop(), name="alert-cycle"),
            asyncio.create_task(self._cleanup_loop(), name="alert-cleanup"),
        ]
        logger.info(
            "alert_scheduler_started",
            cycle_interval=self.cycle_interval,
            cleanup_interval=self.cleanup_interval,
            retention_days=self.retention_days,
        )

    async def stop(self) -> None:
        """
        Stop both timers.

        A cycle in progress always runs to completion (or aborts on its own)
        before this returns. Timers still alive after stop_timeout are
        cancelled. Safe to call multiple times.
        """
        self._shutdown_event.set()
        if self._tasks:
            _, pending = await asyncio.wait(self._tasks, timeout=self.stop_timeout)
            for task in pending:
                task.cancel()
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        cycle = self._cycle_task
        if cycle is not None and not cycle.done():
            logger.warning("alert_scheduler_awaiting_cycle")
            await asyncio.gather(cycle, return_exceptions=True)
        self._cycle_task = None
        logger.info("alert_scheduler_stopped")

    async def wait(self) -> None:
        """Block until stop() has been requested."""
        await self._shutdown_event.wait()
