"""Per-rider location refresh against /map.aspx/refreshmap."""

from enum import Enum
from types import ModuleType
from typing import Any

import requests

from src.hctb_relay.config import RelayConfig
from src.hctb_relay.errors import ScrapeError, SessionExpiredError
from src.hctb_relay.logging import get_logger
from src.hctb_relay.models import RefreshMapInput, Rider, Session
from src.hctb_relay.pages import MapPage
from src.hctb_relay.parser import parse_reply
from src.hctb_relay.session import SessionManager
from src.hctb_relay.utils import JSON_CONTENT_TYPE

log = get_logger(__name__)

UNAUTHORIZED_STATUSES = frozenset({401, 403})


class ScrapeOutcome(str, Enum):
    LOCATED = "located"  # reply carried a bus position
    DEFAULTED = "defaulted"  # reply parsed, no position; default location used
    INACTIVE = "inactive"  # bus done for this window, no position; location held
    SKIPPED = "skipped"  # rider inactive, no request made
    FAILED = "failed"  # transient failure; default location used
    UNAUTHORIZED = "unauthorized"  # session rejected and discarded; rider untouched


class RiderScraper:
    """Refreshes one rider at a time using the school's session cookies."""

    def __init__(
        self,
        config: RelayConfig,
        sessions: SessionManager,
        http: ModuleType | Any = requests,
    ) -> None:
        self.config = config
        self.sessions = sessions
        self.http = http
        self.refresh_url = f"{config.hctb_url}{MapPage.REFRESH_PATH}"

    def scrape(self, rider: Rider, session: Session) -> ScrapeOutcome:
        """Update rider.current/previous, rider.active and rider.alerts.

        Never raises. A 401/403 discards the whole session so the next cycle
        logs in again; other failures only affect this rider.
        """
        default = self.config.default_location

        if not rider.active:
            log.info("scrape_skipped", rider=rider.name, reason="inactive")
            rider.alerts = []
            rider.advance(default)
            return ScrapeOutcome.SKIPPED

        log.info("scrape_started", rider=rider.name)
        try:
            reply = self.fetch_reply(rider, session)
        except SessionExpiredError as e:
            log.info("scrape_unauthorized", rider=rider.name, error=str(e))
            self.sessions.invalidate(session.school, reason="unauthorized")
            return ScrapeOutcome.UNAUTHORIZED
        except ScrapeError as e:
            log.warning("scrape_failed", rider=rider.name, error=str(e))
            rider.alerts = []
            rider.advance(default)
            return ScrapeOutcome.FAILED

        log.debug("scrape_reply", rider=rider.name, reply=reply)
        result = parse_reply(reply)

        if result.active_override is False and rider.active:
            rider.deactivate()
            log.info("rider_inactive", rider=rider.name)
        rider.alerts = list(result.alerts)

        if result.location is not None:
            rider.advance(result.location)
            log.info(
                "location_found",
                rider=rider.name,
                lat=result.location.lat,
                lon=result.location.lon,
            )
            return ScrapeOutcome.LOCATED

        if result.active_override is False:
            # Hold the last position; the skipped scrape next cycle collapses to default
            rider.advance(rider.current)
            return ScrapeOutcome.INACTIVE

        rider.advance(default)
        log.info("location_defaulted", rider=rider.name)
        return ScrapeOutcome.DEFAULTED

    def fetch_reply(self, rider: Rider, session: Session) -> str:
        """POST the refresh request and return the ``d`` payload.

        Raises:
            SessionExpiredError: On 401/403.
            ScrapeError: On timeouts, other bad statuses or a malformed body.
        """
        body = RefreshMapInput(
            legacy_id=rider.id,
            name=rider.name,
            time_span_id=session.time_window.id,
        )
        try:
            response = self.http.post(
                self.refresh_url,
                json=body.model_dump(by_alias=True),
                headers={"Cookie": session.cookies, "Content-Type": JSON_CONTENT_TYPE},
                timeout=self.config.request_timeout_seconds,
            )
        except requests.Timeout as e:
            raise ScrapeError(f"Refresh timed out: {e}") from e
        except requests.RequestException as e:
            raise ScrapeError(f"Refresh request failed: {e}") from e

        if response.status_code in UNAUTHORIZED_STATUSES:
            raise SessionExpiredError(f"Refresh returned {response.status_code}")
        if not response.ok:
            raise ScrapeError(f"Refresh returned {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise ScrapeError(f"Refresh body is not JSON: {e}") from e
        if not isinstance(payload, dict) or not isinstance(payload.get("d"), str):
            raise ScrapeError("Refresh body has no 'd' string")
        return payload["d"]
