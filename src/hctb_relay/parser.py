"""Translate a refresh reply into a ParseResult.

The refresh endpoint answers with JavaScript for the map page to eval, e.g.::

    ClearStaticLayer();
    SetBusPushPin(34.05, -118.25, 'Bus 12', ...);
    ShowMapAlerts(false, true);

Each recognized call is matched independently and unknown text is ignored, so
a reply the portal reshapes degrades to "no location" instead of an error.
"""

import re

from src.hctb_relay.models import AlertKind, Location, ParseResult

PUSH_PIN_RE = re.compile(r"SetBusPushPin\(\s*(-?\d+\.?\d*)\s*,\s*(-?\d+\.?\d*)")
MAP_ALERTS_RE = re.compile(
    r"ShowMapAlerts\(\s*(true|false)\s*,\s*(true|false)\s*\)", re.IGNORECASE
)

# Phrases meaning the rider has no bus to show for the rest of this window
INACTIVE_PHRASES: tuple[str, ...] = (
    "No stops found for student",
    "Vehicle Not In Service",
    "The bus has completed the current route and cannot be viewed at this time",
)


def parse_location(reply: str) -> Location | None:
    match = PUSH_PIN_RE.search(reply)
    if match is None:
        return None
    return Location(lat=match.group(1), lon=match.group(2))


def parse_alerts(reply: str) -> list[AlertKind]:
    """Alerts flagged by ShowMapAlerts(substitution, latency); empty when absent."""
    match = MAP_ALERTS_RE.search(reply)
    if match is None:
        return []
    alerts = []
    if match.group(1).lower() == "true":
        alerts.append(AlertKind.SUBSTITUTION)
    if match.group(2).lower() == "true":
        alerts.append(AlertKind.LATENCY)
    return alerts


def is_inactive(reply: str) -> bool:
    return any(phrase in reply for phrase in INACTIVE_PHRASES)


def parse_reply(reply: str) -> ParseResult:
    """Extract location, active override and alerts from a refresh reply.

    Never raises on unrecognized content.
    """
    if not reply:
        return ParseResult()
    return ParseResult(
        location=parse_location(reply),
        active_override=False if is_inactive(reply) else None,
        alerts=parse_alerts(reply),
    )
