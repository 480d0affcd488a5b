"""Relay configuration loaded from environment variables.

Holds upstream credentials, downstream Home Assistant endpoint, fallback
coordinates and the polling window.
"""

from datetime import time

from pydantic import Field
from pydantic_settings import BaseSettings

from src.hctb_relay.models import Location


class RelayConfig(BaseSettings):
    """Relay configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Here Comes The Bus (server-rendered forms + one AJAX endpoint, no API)
    hctb_url: str = Field(
        default="https://login.herecomesthebus.com",
        description="Here Comes The Bus portal base URL",
    )
    hctb_username: str = Field(default="", description="Portal username")
    hctb_password: str = Field(default="", description="Portal password")
    hctb_schoolcode: str = Field(
        default="",
        description="Comma-separated school (account) codes, one session each",
    )
    auth_cookie_names: list[str] = Field(
        default=[".ASPXFORMSAUTH", "ASP.NET_SessionId"],
        description="Cookie names whose presence on the login redirect means success",
    )

    # Fallback coordinates used when no live location is available
    default_lat: str = Field(default="0", description="Default latitude")
    default_lon: str = Field(default="0", description="Default longitude")

    # Home Assistant
    supervisor_uri: str = Field(
        default="http://supervisor/core",
        description="Home Assistant base URL",
    )
    supervisor_token: str = Field(default="", description="Home Assistant bearer token")
    check_device_state: bool = Field(
        default=False,
        description="Read the tracker's stored location before syncing and diff against it",
    )

    # Network / session
    request_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout applied to every upstream and downstream request",
    )
    session_ttl_minutes: int = Field(
        default=19,
        description="Session lifetime, kept under the portal's idle timeout",
    )
    retry_on_session_loss: bool = Field(
        default=True,
        description="Re-run a cycle once when a session is invalidated mid-cycle",
    )

    # Schedule
    poll_interval_seconds: int = Field(default=10, description="Seconds between cycles")
    active_start: time = Field(default=time(7, 0), description="Start of polling window")
    active_end: time = Field(default=time(17, 0), description="End of polling window")
    active_weekdays: list[int] = Field(
        default=[0, 1, 2, 3, 4],
        description="Weekdays to poll on (0=Monday)",
    )
    active_months: list[int] = Field(
        default=[1, 2, 3, 4, 5, 8, 9, 10, 11, 12],
        description="Months to poll in (school year)",
    )

    # Health check
    health_host: str = Field(default="0.0.0.0", description="Health server bind host")
    health_port: int = Field(default=8080, description="Health server port")

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def schools(self) -> list[str]:
        """School codes from hctb_schoolcode, whitespace and empties dropped."""
        return [code.strip() for code in self.hctb_schoolcode.split(",") if code.strip()]

    @property
    def default_location(self) -> Location:
        return Location(lat=self.default_lat, lon=self.default_lon, default=True)


_config: RelayConfig | None = None


def get_config() -> RelayConfig:
    """Get the relay configuration singleton.

    Returns:
        RelayConfig: Relay configuration instance
    """
    global _config
    if _config is None:
        _config = RelayConfig()
    return _config
