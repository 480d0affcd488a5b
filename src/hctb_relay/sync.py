"""Forward rider locations and alerts to Home Assistant.

Locations go to device_tracker/see only when both coordinates moved since the
previous cycle. Alerts become persistent notifications, each sent once per
device, alert kind, ride date and time window for the life of the process.
"""

from datetime import datetime
from types import ModuleType
from typing import Any

import requests

from src.hctb_relay.config import RelayConfig
from src.hctb_relay.errors import SyncError
from src.hctb_relay.logging import get_logger
from src.hctb_relay.models import (
    AlertKind,
    DeviceTrackerSee,
    Location,
    NotificationCreate,
    Rider,
    Session,
)
from src.hctb_relay.utils import bearer_headers

log = get_logger(__name__)

NOTIFICATION_TITLE = "Here Comes The Bus Alert"

ALERT_MESSAGES: dict[AlertKind, str] = {
    AlertKind.SUBSTITUTION: (
        "has had a substitution, location data may not be available for this ride."
    ),
    AlertKind.LATENCY: (
        "data is experiencing high latency, you may not be able to rely on "
        "location data for this ride."
    ),
}


class NotificationLedger:
    """Notification ids already sent by this process. Append-only."""

    def __init__(self) -> None:
        self._sent: set[str] = set()

    def __contains__(self, notification_id: str) -> bool:
        return notification_id in self._sent

    def __len__(self) -> int:
        return len(self._sent)

    def add(self, notification_id: str) -> None:
        self._sent.add(notification_id)


class HomeAssistantClient:
    """Minimal REST client for the three Home Assistant calls the relay makes."""

    def __init__(self, config: RelayConfig, http: ModuleType | Any = requests) -> None:
        self.base_url = config.supervisor_uri.rstrip("/")
        self.headers = bearer_headers(config.supervisor_token)
        self.timeout = config.request_timeout_seconds
        self.http = http

    def _post(self, path: str, body: dict) -> None:
        try:
            response = self.http.post(
                f"{self.base_url}{path}",
                json=body,
                headers=self.headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SyncError(f"POST {path} failed: {e}") from e
        if not response.ok:
            raise SyncError(f"POST {path} returned {response.status_code}")

    def see(self, device: str, location: Location) -> None:
        body = DeviceTrackerSee(dev_id=device, gps=[location.lat, location.lon])
        self._post("/api/services/device_tracker/see", body.model_dump())

    def create_notification(self, notification: NotificationCreate) -> None:
        self._post("/api/services/persistent_notification/create", notification.model_dump())

    def device_location(self, device: str) -> Location | None:
        """Stored tracker location, or None when the device doesn't exist yet.

        Raises:
            SyncError: On request failure, an unexpected status or a malformed body.
        """
        path = f"/api/states/device_tracker.{device}"
        try:
            response = self.http.get(
                f"{self.base_url}{path}", headers=self.headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise SyncError(f"GET {path} failed: {e}") from e
        if response.status_code == 404:
            return None
        if not response.ok:
            raise SyncError(f"GET {path} returned {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise SyncError(f"GET {path} body is not JSON: {e}") from e
        if not isinstance(payload, dict):
            raise SyncError(f"GET {path} body is not an object")

        attributes = payload.get("attributes") or {}
        if not isinstance(attributes, dict):
            raise SyncError(f"GET {path} attributes is not an object")
        lat, lon = attributes.get("latitude"), attributes.get("longitude")
        if lat is None or lon is None:
            return None
        return Location(lat=str(lat), lon=str(lon))


def possessive(name: str) -> str:
    return f"{name}'" if name.endswith("s") else f"{name}'s"


def ride_date(now: datetime) -> str:
    """Ride date as used in notification ids, e.g. 10-19-26."""
    return now.strftime("%m-%d-%y")


def notification_id(device: str, alert: AlertKind, now: datetime, time_window_id: str) -> str:
    return f"{device}_{alert.value}_{ride_date(now)}_{time_window_id}"


class SyncDispatcher:
    """Decides what to forward for a rider after each scrape."""

    def __init__(
        self,
        config: RelayConfig,
        client: HomeAssistantClient,
        ledger: NotificationLedger | None = None,
    ) -> None:
        self.config = config
        self.client = client
        self.ledger = ledger if ledger is not None else NotificationLedger()

    def sync(self, rider: Rider, session: Session, now: datetime) -> None:
        """Forward location (if changed) and any new alerts. Never raises."""
        device = rider.device_id
        if device is None:
            log.error("sync_failed", rider=rider.name, error="device id could not be resolved")
            return

        try:
            self.sync_location(rider, device)
        except SyncError as e:
            log.error("sync_failed", rider=rider.name, device=device, error=str(e))

        for alert in rider.alerts:
            try:
                self.sync_alert(rider, device, alert, session, now)
            except SyncError as e:
                log.error(
                    "alert_failed", rider=rider.name, device=device, alert=alert.value, error=str(e)
                )

    def sync_location(self, rider: Rider, device: str) -> bool:
        """Send rider.current when both coordinates changed. Returns True if sent."""
        previous: Location | None = rider.previous
        if self.config.check_device_state:
            try:
                previous = self.client.device_location(device)
            except SyncError as e:
                log.warning("device_state_unavailable", device=device, error=str(e))
                previous = rider.previous
            else:
                if previous is None:
                    log.info("device_unknown", device=device)

        if previous is not None and not rider.current.differs_from(previous):
            log.info("location_unchanged", rider=rider.name, device=device)
            return False

        self.client.see(device, rider.current)
        log.info(
            "location_sent",
            rider=rider.name,
            device=device,
            lat=rider.current.lat,
            lon=rider.current.lon,
        )
        return True

    def sync_alert(
        self, rider: Rider, device: str, alert: AlertKind, session: Session, now: datetime
    ) -> bool:
        """Create a notification unless this ride already got one. Returns True if sent."""
        ident = notification_id(device, alert, now, session.time_window.id)
        if ident in self.ledger:
            log.debug("alert_already_sent", device=device, notification_id=ident)
            return False

        self.client.create_notification(
            NotificationCreate(
                message=f"{possessive(rider.name)} bus {ALERT_MESSAGES[alert]}",
                title=NOTIFICATION_TITLE,
                notification_id=ident,
            )
        )
        self.ledger.add(ident)
        log.info("alert_sent", device=device, alert=alert.value, notification_id=ident)
        return True
