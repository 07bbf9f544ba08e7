"""
SyncScheduler — run the orchestrator at startup and then every N minutes.

Interval changes never cut a running cycle short:

    not started      → start with the new interval (cycle runs now)
    waiting          → restart with the new interval (cycle runs now)
    cycle in flight  → applied once the cycle finishes; when the new
                       interval is shorter the next cycle runs right
                       away, then the new cadence takes over

``stop()`` only prevents the next tick; an in-flight cycle completes.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from enum import StrEnum
from typing import Any, Protocol

from ordersync.core.constants import SYNC_INTERVAL_KEY
from ordersync.core.logging import get_logger

logger = get_logger(__name__)


class IntervalChange(StrEnum):
    STARTED = "started"
    RESTARTED = "restarted"
    DEFERRED = "deferred"


class CycleRunner(Protocol):
    async def run_cycle(self) -> Any: ...


class SettingStore(Protocol):
    def set(self, key: str, value: Any) -> None: ...


class SyncScheduler:
    """
    Args:
        orchestrator: Anything with ``async run_cycle()``.
        interval_minutes: Period between the end of one cycle and the next.
        store: Optional key-value store the chosen interval is persisted to.
    """

    def __init__(
        self,
        orchestrator: CycleRunner,
        interval_minutes: float = 10.0,
        *,
        store: SettingStore | None = None,
    ) -> None:
        _validate_interval(interval_minutes)
        self.orchestrator = orchestrator
        self.interval_minutes = float(interval_minutes)
        self._store = store
        self._task: asyncio.Task | None = None
        self._retiring: set[asyncio.Task] = set()
        self._wake = asyncio.Event()
        self._cycle_running = False
        self._pending_interval: float | None = None
        self._immediate_run = False
        self.cycles_run = 0
        self.last_run_at: datetime | None = None
        self.next_run_at: datetime | None = None
        self.last_result: Any = None

    # ─── State ─────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def cycle_running(self) -> bool:
        return self._cycle_running

    @property
    def pending_interval(self) -> float | None:
        return self._pending_interval

    def status(self) -> dict[str, Any]:
        return {
            "running": self.running,
            "cycle_running": self._cycle_running,
            "interval_minutes": self.interval_minutes,
            "pending_interval_minutes": self._pending_interval,
            "immediate_run_pending": self._immediate_run,
            "cycles_run": self.cycles_run,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "next_run_at": self.next_run_at.isoformat() if self.next_run_at else None,
        }

    # ─── Control ───────────────────────────────────────

    def start(self) -> bool:
        """Start the loop; the first cycle runs immediately.  False if already running."""
        if self.running:
            return False
        self._wake = asyncio.Event()
        self._task = asyncio.create_task(self._loop(), name="sync-scheduler")
        logger.info("Auto-sync started", interval_minutes=self.interval_minutes)
        return True

    async def stop(self, *, wait: bool = True) -> None:
        """
        Prevent further ticks.  An in-flight cycle always completes; with
        ``wait`` it (and any loop stopped earlier without waiting) is awaited.
        """
        task, self._task = self._task, None
        if task is not None:
            self._retiring.add(task)
            task.add_done_callback(self._retiring.discard)
            self._wake.set()
            self.next_run_at = None
            logger.info("Auto-sync stopped")
        if wait and self._retiring:
            await asyncio.gather(*self._retiring)

    def change_interval(self, minutes: float) -> IntervalChange:
        _validate_interval(minutes)
        minutes = float(minutes)
        self._persist(minutes)

        if not self.running:
            self.interval_minutes = minutes
            self.start()
            return IntervalChange.STARTED

        if not self._cycle_running:
            self.interval_minutes = minutes
            self._wake.set()
            logger.info("Auto-sync restarted with new interval", interval_minutes=minutes)
            return IntervalChange.RESTARTED

        self._pending_interval = minutes
        if minutes < self.interval_minutes:
            self._immediate_run = True
        logger.info(
            "Interval change deferred until current cycle completes",
            current_minutes=self.interval_minutes,
            new_minutes=minutes,
            immediate_run=self._immediate_run,
        )
        return IntervalChange.DEFERRED

    # ─── Loop ──────────────────────────────────────────

    def _is_current(self) -> bool:
        # a loop runs only while it is the scheduler's task
        return self._task is not None and self._task is asyncio.current_task()

    async def _loop(self) -> None:
        run_now = True
        while self._is_current():
            if not run_now:
                await self._wait(self.interval_minutes * 60)
                if not self._is_current():
                    break
            run_now = False

            await self._run_once()

            if self._pending_interval is not None:
                self.interval_minutes = self._pending_interval
                self._pending_interval = None
                logger.info("Pending interval applied", interval_minutes=self.interval_minutes)
                if self._immediate_run:
                    self._immediate_run = False
                    run_now = True

    async def _wait(self, seconds: float) -> None:
        self._wake.clear()
        self.next_run_at = datetime.now(timezone.utc) + timedelta(seconds=seconds)
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _run_once(self) -> None:
        self._cycle_running = True
        self.next_run_at = None
        self.last_run_at = datetime.now(timezone.utc)
        try:
            self.last_result = await self.orchestrator.run_cycle()
        except Exception as exc:
            logger.exception("Scheduled sync cycle raised", error=str(exc))
        finally:
            self._cycle_running = False
            self.cycles_run += 1

    def _persist(self, minutes: float) -> None:
        if self._store is None:
            return
        try:
            self._store.set(SYNC_INTERVAL_KEY, minutes)
        except Exception as exc:
            logger.warning("Could not persist sync interval", error=str(exc))


def _validate_interval(minutes: float) -> None:
    if not isinstance(minutes, (int, float)) or isinstance(minutes, bool) or minutes <= 0:
        raise ValueError("Sync interval must be a positive number of minutes")
