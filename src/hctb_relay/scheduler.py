"""Periodic trigger for relay cycles.

Cycles fire every poll interval while inside the active window (school hours,
weekdays, school-year months). A trigger that arrives while a cycle is still
running is dropped, not queued.
"""

import threading
from collections.abc import Callable
from datetime import datetime

from src.hctb_relay.config import RelayConfig
from src.hctb_relay.logging import get_logger
from src.hctb_relay.orchestrator import CycleReport, TaskOrchestrator

log = get_logger(__name__)


class ActiveWindow:
    """Time-of-day, weekday and month filter for triggers."""

    def __init__(self, config: RelayConfig) -> None:
        self.start = config.active_start
        self.end = config.active_end
        self.weekdays = frozenset(config.active_weekdays)
        self.months = frozenset(config.active_months)

    def contains(self, now: datetime) -> bool:
        if now.month not in self.months or now.weekday() not in self.weekdays:
            return False
        return self.start <= now.time() < self.end


class CycleGuard:
    """Runs a cycle unless one is already in progress."""

    def __init__(self, cycle: Callable[[datetime], CycleReport]) -> None:
        self.cycle = cycle
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def run(self, now: datetime) -> CycleReport | None:
        """Run the cycle, or return None when the previous one hasn't finished."""
        if not self._lock.acquire(blocking=False):
            log.warning("cycle_skipped", reason="previous_cycle_running", triggered_at=now.isoformat())
            return None
        try:
            log.info("cycle_started", triggered_at=now.isoformat())
            report = self.cycle(now)
            elapsed_ms = int((datetime.now() - now).total_seconds() * 1000)
            log.info(
                "cycle_finished",
                elapsed_ms=elapsed_ms,
                attempts=report.attempt,
                failed_logins=report.failed_logins,
            )
            return report
        finally:
            self._lock.release()


class Scheduler:
    """Fires guarded cycles on a fixed interval until stopped."""

    def __init__(
        self,
        config: RelayConfig,
        orchestrator: TaskOrchestrator,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.interval = config.poll_interval_seconds
        self.window = ActiveWindow(config)
        self.guard = CycleGuard(orchestrator.run_cycle)
        self.clock = clock

    def tick(self) -> CycleReport | None:
        now = self.clock()
        if not self.window.contains(now):
            log.debug("cycle_outside_window", now=now.isoformat())
            return None
        return self.guard.run(now)

    def run_forever(self, stop: threading.Event) -> None:
        log.info("scheduler_started", interval_seconds=self.interval)
        while not stop.is_set():
            try:
                self.tick()
            except Exception as e:
                # A broken cycle must not stop the next trigger
                log.exception("cycle_crashed", error=str(e), type=type(e).__name__)
            stop.wait(self.interval)
        log.info("scheduler_stopped")
