"""Structured logging configuration using structlog.

JSON lines in production, console rendering for development. Every module logs
through get_logger(); the orchestrator binds the school code per account pass
via bound_school() and the cycle trigger time via bound_cycle(), so each line
can be traced back to its account and cycle.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

import structlog


def setup_logging(json_output: bool = False, log_level: str = "INFO") -> None:
    """Configure structlog with appropriate processors and output format.

    Args:
        json_output: If True, output JSON (production). If False, console format (dev).
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if json_output:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # requests/urllib3 log through stdlib; route them to stdout at the same level
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )
    logging.getLogger().handlers = []
    logging.getLogger().addHandler(logging.StreamHandler(sys.stdout))
    logging.getLogger("urllib3").setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger instance bound with the module name.

    Args:
        name: Logger name (typically __name__ from calling module).
    """
    return structlog.get_logger(name)


@contextmanager
def bound_school(school: str) -> Iterator[None]:
    """Bind the account code into every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(school=school):
        yield


@contextmanager
def bound_cycle(triggered_at: datetime, attempt: int = 1) -> Iterator[None]:
    """Bind the cycle trigger time and attempt number for one pass."""
    with structlog.contextvars.bound_contextvars(
        cycle=triggered_at.isoformat(timespec="seconds"), attempt=attempt
    ):
        yield
