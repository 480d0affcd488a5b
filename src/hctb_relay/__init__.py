"""Here Comes The Bus -> Home Assistant location relay.

Logs in to the Here Comes The Bus portal, polls each rider's bus position and
republishes it (plus substitution/latency alerts) to Home Assistant.
"""

from src.hctb_relay.models import AlertKind, Location, ParseResult, Rider, Session, TimeWindow
from src.hctb_relay.orchestrator import CycleReport, TaskOrchestrator, build_orchestrator
from src.hctb_relay.parser import parse_reply

__all__ = [
    "AlertKind",
    "CycleReport",
    "Location",
    "ParseResult",
    "Rider",
    "Session",
    "TaskOrchestrator",
    "TimeWindow",
    "build_orchestrator",
    "parse_reply",
]
