"""
Structured logging for the risk agent.

Each line carries event_type, level, an ISO-8601 UTC timestamp, the
emitting module under "logger" and whatever context the call site passed
(address, sub-scores, recommendation). Values under secret-bearing keys are
masked before rendering, so a stray secret= or signature= never reaches
the log sink.

configure_logging() reads LOG_LEVEL and LOG_FORMAT. It runs once on import
with the process environment, and again from risk_agent.config after .env
has been loaded. Loggers returned by get_logger() resolve the configuration
when they emit, so module-level loggers follow a later reconfiguration.

This module must not import from risk_agent: every other package imports it.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

DEFAULT_LEVEL = "INFO"
DEFAULT_FORMAT = "json"

REDACTED = "[redacted]"
SECRET_KEYS = frozenset({"secret", "internal_shared_secret", "signature", "authorization"})


def _level_number(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _normalize_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog's positional 'event' becomes event_type."""
    event = event_dict.pop("event", None)
    if event is not None:
        event_dict.setdefault("event_type", str(event))
    return event_dict


def _mask_secrets(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    for key in SECRET_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    """
    (Re)configure structlog.

    Args:
        level: Level name; defaults to LOG_LEVEL, then INFO. Unknown names mean INFO.
        log_format: "json" for one JSON object per line, anything else for the
            console renderer; defaults to LOG_FORMAT, then json.
    """
    level = level or os.getenv("LOG_LEVEL") or DEFAULT_LEVEL
    log_format = (log_format or os.getenv("LOG_FORMAT") or DEFAULT_FORMAT).strip().lower()
    if log_format == "json":
        renderer: Any = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            _normalize_event,
            _mask_secrets,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_level_number(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


if not structlog.is_configured():
    configure_logging()


def get_logger(name: str) -> Any:
    """
    Lazy structured logger tagged with the module name.

        logger = get_logger(__name__)
        logger.info("risk_score_computed", address=addr, score=42, recommendation="hold")
    """
    return structlog.get_logger(name)


def bind_address(address: str | None) -> Any:
    """Logger with the scored address bound to every call."""
    return get_logger("risk_agent").bind(address=address)
