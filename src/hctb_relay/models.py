"""Pydantic models for riders, sessions and the wire payloads.

Coordinates stay as the decimal strings the portal prints; converting them to
floats and back would not reproduce the same text for diffing.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Location(BaseModel):
    """A latitude/longitude pair as decimal strings."""

    model_config = ConfigDict(frozen=True)

    lat: str
    lon: str
    default: bool = False  # True for the configured fallback coordinate

    def differs_from(self, other: "Location") -> bool:
        """True only when both latitude and longitude changed."""
        return self.lat != other.lat and self.lon != other.lon


class AlertKind(str, Enum):
    SUBSTITUTION = "substitution"
    LATENCY = "latency"


class TimeWindow(BaseModel):
    """Time-of-day selection from the map page (AM, PM, Mid-Day...)."""

    model_config = ConfigDict(frozen=True)

    id: str  # option value, sent as timeSpanId
    label: str = ""

    @field_validator("id")
    @classmethod
    def _id_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("time window id must not be empty")
        return value


class Rider(BaseModel):
    """One passenger option from the map page.

    Mutated by the scraper every cycle. ``active`` only ever goes from True to
    False within a session.
    """

    id: str  # legacyID
    name: str
    active: bool = True
    current: Location
    previous: Location
    alerts: list[AlertKind] = Field(default_factory=list)

    @property
    def device_id(self) -> str | None:
        """Tracker id: first name lower-cased plus ``_bus``."""
        parts = self.name.split()
        if not parts:
            return None
        return f"{parts[0].lower()}_bus"

    def deactivate(self) -> None:
        self.active = False

    def advance(self, location: Location) -> None:
        """Shift current into previous and store the new location."""
        self.previous = self.current
        self.current = location


class Session(BaseModel):
    """Authenticated portal context for one school.

    Built only after every login step succeeded and replaced wholesale; fields
    are never reassigned.
    """

    model_config = ConfigDict(frozen=True)

    school: str
    cookies: str  # "name=value; name=value" as sent in the Cookie header
    time_window: TimeWindow
    riders: list[Rider] = Field(min_length=1)
    expires: datetime

    @field_validator("cookies")
    @classmethod
    def _cookies_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("session cookies must not be empty")
        return value

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires


class ParseResult(BaseModel):
    """What one refresh reply says about a rider."""

    location: Location | None = None
    active_override: bool | None = None  # False when the bus is done for now
    alerts: list[AlertKind] = Field(default_factory=list)


class RefreshMapInput(BaseModel):
    """Body of POST /map.aspx/refreshmap."""

    model_config = ConfigDict(populate_by_name=True)

    legacy_id: str = Field(alias="legacyID")
    name: str
    time_span_id: str = Field(alias="timeSpanId")
    wait: str = "true"


class DeviceTrackerSee(BaseModel):
    """Body of POST /api/services/device_tracker/see."""

    dev_id: str
    gps: list[str]


class NotificationCreate(BaseModel):
    """Body of POST /api/services/persistent_notification/create."""

    message: str
    title: str
    notification_id: str
