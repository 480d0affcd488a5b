"""One relay cycle: login -> scrape -> sync for every school, in order.

Schools and riders are handled strictly one after another; riders share their
school's cookies and the portal is not known to accept parallel refreshes on
one session. If a session gets rejected mid-cycle the cycle runs once more so
the school is re-authenticated without waiting for the next trigger.
"""

from dataclasses import dataclass, field
from datetime import datetime
from types import ModuleType
from typing import Any

import requests
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
)

from src.hctb_relay.config import RelayConfig
from src.hctb_relay.errors import AuthenticationError, SessionExpiredError
from src.hctb_relay.logging import bound_cycle, bound_school, get_logger
from src.hctb_relay.scraper import RiderScraper, ScrapeOutcome
from src.hctb_relay.session import HealthState, SessionManager
from src.hctb_relay.sync import HomeAssistantClient, NotificationLedger, SyncDispatcher

logger = get_logger(__name__)


@dataclass
class CycleReport:
    """What happened during one pass over all schools."""

    started_at: datetime
    attempt: int = 1
    failed_logins: list[str] = field(default_factory=list)
    sessions_lost: list[str] = field(default_factory=list)
    outcomes: dict[str, list[ScrapeOutcome]] = field(default_factory=dict)


class SessionLostDuringCycle(SessionExpiredError):
    """Raised at the end of a pass in which at least one session was rejected."""

    def __init__(self, report: CycleReport) -> None:
        super().__init__(f"Session lost for {', '.join(report.sessions_lost)}")
        self.report = report


def _log_retry(retry_state: RetryCallState) -> None:
    logger.info("cycle_retrying", attempt=retry_state.attempt_number + 1)


class TaskOrchestrator:
    """Drives cycles across all configured schools."""

    def __init__(
        self,
        config: RelayConfig,
        sessions: SessionManager,
        scraper: RiderScraper,
        dispatcher: SyncDispatcher,
    ) -> None:
        self.config = config
        self.sessions = sessions
        self.scraper = scraper
        self.dispatcher = dispatcher

    def run_cycle(self, now: datetime) -> CycleReport:
        """Run one cycle, re-running it once if a session was lost midway."""
        if not self.config.retry_on_session_loss:
            return self.run_pass(now)

        retryer = Retrying(
            stop=stop_after_attempt(2),
            retry=retry_if_exception_type(SessionLostDuringCycle),
            before_sleep=_log_retry,
            reraise=True,
        )
        schools = self.config.schools
        report: CycleReport | None = None
        try:
            for attempt in retryer:
                with attempt:
                    report = self.run_pass(
                        now,
                        attempt=attempt.retry_state.attempt_number,
                        schools=schools,
                        previous=report,
                    )
                    if report.sessions_lost:
                        # Only schools whose session was rejected get a second pass
                        schools = list(report.sessions_lost)
                        raise SessionLostDuringCycle(report)
        except SessionLostDuringCycle as e:
            logger.warning("cycle_session_lost", schools=e.report.sessions_lost)
            return e.report
        return report

    def run_pass(
        self,
        now: datetime,
        attempt: int = 1,
        schools: list[str] | None = None,
        previous: CycleReport | None = None,
    ) -> CycleReport:
        """Single login -> scrape -> sync pass. Never raises.

        Args:
            now: Cycle trigger time.
            attempt: 1 for the first pass, 2 for the retry.
            schools: Schools to visit; all configured schools by default.
            previous: Report of the earlier pass; results of schools not
                visited again are carried over.
        """
        schools = self.config.schools if schools is None else schools
        report = CycleReport(started_at=now, attempt=attempt)
        if previous is not None:
            report.failed_logins = list(previous.failed_logins)
            report.outcomes = {
                school: outcomes
                for school, outcomes in previous.outcomes.items()
                if school not in schools
            }

        with bound_cycle(now, attempt):
            for school in schools:
                with bound_school(school):
                    self._run_school(school, now, report)
        return report

    def _run_school(self, school: str, now: datetime, report: CycleReport) -> None:
        try:
            session = self.sessions.ensure_session(school, now)
        except AuthenticationError as e:
            logger.error("login_failed", error=str(e))
            report.failed_logins.append(school)
            return

        outcomes = report.outcomes.setdefault(school, [])
        for rider in session.riders:
            outcome = self.scraper.scrape(rider, session)
            outcomes.append(outcome)
            if outcome is ScrapeOutcome.UNAUTHORIZED:
                if school not in report.sessions_lost:
                    report.sessions_lost.append(school)
                continue
            self.dispatcher.sync(rider, session, now)


def build_orchestrator(
    config: RelayConfig,
    http: ModuleType | Any = requests,
    health: HealthState | None = None,
    ledger: NotificationLedger | None = None,
) -> TaskOrchestrator:
    """Wire the default components around one shared transport."""
    sessions = SessionManager(config, http=http, health=health)
    return TaskOrchestrator(
        config,
        sessions=sessions,
        scraper=RiderScraper(config, sessions, http=http),
        dispatcher=SyncDispatcher(config, HomeAssistantClient(config, http=http), ledger),
    )
