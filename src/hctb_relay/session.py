"""Portal session management, one session per school code.

SessionManager logs in through the WebForms sign-in page with plain HTTP,
collects the auth cookies, reads the rider list from the map page and keeps the
result in memory until it expires or the refresh endpoint rejects it.
Nothing is persisted; a restart simply logs in again.
"""

from datetime import datetime, timedelta
from types import ModuleType
from typing import Any

import requests
from pydantic import ValidationError
from requests.cookies import RequestsCookieJar

from src.hctb_relay.config import RelayConfig
from src.hctb_relay.errors import AuthenticationError
from src.hctb_relay.logging import get_logger
from src.hctb_relay.models import Session
from src.hctb_relay.pages import LoginForm, MapPage
from src.hctb_relay.utils import FORM_CONTENT_TYPE, cookie_header

logger = get_logger(__name__)


class HealthState:
    """Liveness flag: False after a failed login, True after a good one."""

    def __init__(self) -> None:
        self.healthy = True

    def mark(self, healthy: bool) -> None:
        if healthy != self.healthy:
            logger.info("health_changed", healthy=healthy)
        self.healthy = healthy


class SessionManager:
    """Owns the live Session for each school.

    A school maps to a complete Session or to nothing; a half-built session is
    never stored.
    """

    def __init__(
        self,
        config: RelayConfig,
        http: ModuleType | Any = requests,
        health: HealthState | None = None,
    ) -> None:
        """Initialize SessionManager.

        Args:
            config: Relay configuration (credentials, URLs, timeouts).
            http: Object exposing requests-style get/post; the requests module by default.
            health: Shared health flag updated on every login attempt.
        """
        self.config = config
        self.http = http
        self.health = health or HealthState()
        self.sessions: dict[str, Session] = {}
        self.ttl = timedelta(minutes=config.session_ttl_minutes)

    def get(self, school: str) -> Session | None:
        return self.sessions.get(school)

    def invalidate(self, school: str, reason: str) -> None:
        """Drop the school's session so the next ensure_session logs in again."""
        if self.sessions.pop(school, None) is not None:
            logger.info("session_invalidated", school=school, reason=reason)

    def ensure_session(self, school: str, now: datetime) -> Session:
        """Return a valid session for the school, logging in if needed.

        Raises:
            AuthenticationError: If any login step fails. No session is stored.
        """
        session = self.sessions.get(school)
        if session is not None and session.is_expired(now):
            logger.info("session_expired", school=school, expires=session.expires.isoformat())
            self.invalidate(school, reason="expired")
            session = None

        if session is not None:
            logger.debug("session_reused", school=school, riders=len(session.riders))
            return session

        try:
            session = self.login(school, now)
        except AuthenticationError:
            self.sessions.pop(school, None)
            self.health.mark(False)
            raise
        except Exception as e:
            self.sessions.pop(school, None)
            self.health.mark(False)
            logger.error("login_error", school=school, error=str(e), type=type(e).__name__)
            raise AuthenticationError(f"Login failed for {school}: {e}") from e

        self.sessions[school] = session
        self.health.mark(True)
        logger.info(
            "session_established",
            school=school,
            riders=len(session.riders),
            time_window=session.time_window.label,
            expires=session.expires.isoformat(),
        )
        return session

    def login(self, school: str, now: datetime) -> Session:
        """Run the full sign-in sequence and build a Session.

        Raises:
            AuthenticationError: On a bad status, a missing auth cookie, or a map
                page without riders or a selected time window.
        """
        logger.info("login_started", school=school)
        timeout = self.config.request_timeout_seconds
        login_url = f"{self.config.hctb_url}{LoginForm.URL_PATH}"

        try:
            form_response = self.http.get(login_url, timeout=timeout)
        except requests.RequestException as e:
            raise AuthenticationError(f"Login form request failed: {e}") from e
        if not form_response.ok:
            raise AuthenticationError(f"Login form returned {form_response.status_code}")
        jar = RequestsCookieJar()
        jar.update(form_response.cookies)
        form = LoginForm(form_response.text)

        try:
            post_response = self.http.post(
                login_url,
                data=form.form_data(
                    self.config.hctb_username, self.config.hctb_password, school
                ),
                headers={"Cookie": cookie_header(jar), "Content-Type": FORM_CONTENT_TYPE},
                allow_redirects=False,
                timeout=timeout,
            )
        except requests.RequestException as e:
            raise AuthenticationError(f"Credential post failed: {e}") from e

        # The redirect's Set-Cookie is the only reliable success signal
        if not set(post_response.cookies.keys()) & set(self.config.auth_cookie_names):
            raise AuthenticationError(
                f"No auth cookie after credential post (status {post_response.status_code})"
            )
        jar.update(post_response.cookies)
        cookies = cookie_header(jar)
        logger.debug("login_cookie_received", school=school, status=post_response.status_code)

        try:
            map_response = self.http.get(
                f"{self.config.hctb_url}{MapPage.URL_PATH}",
                headers={"Cookie": cookies},
                timeout=timeout,
            )
        except requests.RequestException as e:
            raise AuthenticationError(f"Map page request failed: {e}") from e
        if not map_response.ok:
            raise AuthenticationError(f"Map page returned {map_response.status_code}")

        page = MapPage(map_response.text)
        riders = page.riders(self.config.default_location)
        time_window = page.time_window()
        for rider in riders:
            logger.debug("rider_found", school=school, rider=rider.name, rider_id=rider.id)
        if not riders or time_window is None:
            raise AuthenticationError(
                f"Map page incomplete: riders={len(riders)} time_window={time_window is not None}"
            )

        try:
            return Session(
                school=school,
                cookies=cookies,
                time_window=time_window,
                riders=riders,
                expires=now + self.ttl,
            )
        except ValidationError as e:
            raise AuthenticationError(f"Session rejected: {e}") from e
