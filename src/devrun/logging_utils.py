"""Structured logging helpers with correlation ids and secret masking."""

from __future__ import annotations

import logging
import os
import re
import sys
import uuid
from typing import Any, Dict

import structlog

_CORRELATION_ENV = "DEVRUN_CORRELATION_ID"
_CONFIGURED = False

_SECRET_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?i)bearer\s+[A-Za-z0-9._-]+"),
    re.compile(r"(?i)(token|password|passwd|secret)\s*[:=]\s*[^\s,;]+"),
    re.compile(r"(?i)(https?://[^:/\s]+):[^@/\s]+@"),
)


def _mask_value(value: str) -> str:
    masked = value
    for pattern in _SECRET_PATTERNS:
        masked = pattern.sub("[REDACTED]", masked)
    return masked


def _mask_event(_: structlog.types.WrappedLogger, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in list(event_dict.items()):
        if isinstance(value, str):
            event_dict[key] = _mask_value(value)
        elif isinstance(value, (list, tuple)):
            event_dict[key] = [
                _mask_value(item) if isinstance(item, str) else item for item in value
            ]
    return event_dict


def correlation_id() -> str:
    cid = os.getenv(_CORRELATION_ENV)
    if cid:
        return cid
    if os.getenv("GITHUB_RUN_ID"):
        cid = f"gha-{os.getenv('GITHUB_RUN_ID')}"
    else:
        cid = f"local-{uuid.uuid4()}"
    os.environ[_CORRELATION_ENV] = cid
    return cid


def _level_number(level: str | int) -> int:
    if isinstance(level, int):
        return level
    numeric = logging.getLevelName(level.upper())
    return numeric if isinstance(numeric, int) else logging.INFO


def configure_logging(level: str | int = logging.INFO, *, force: bool = False) -> None:
    """Configure structlog once per process; ``force`` re-applies the level."""

    global _CONFIGURED
    if _CONFIGURED and not force:
        return

    numeric = _level_number(level)
    if not _CONFIGURED:
        logging.basicConfig(level=numeric, format="%(message)s", stream=sys.stderr)
    logging.getLogger("devrun").setLevel(numeric)

    def _add_correlation(_: structlog.types.WrappedLogger, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("correlation_id", correlation_id())
        return event_dict

    structlog.configure(
        processors=[
            _add_correlation,
            structlog.processors.add_log_level,
            _mask_event,
            structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        cache_logger_on_first_use=False,
    )
    _CONFIGURED = True


def get_logger() -> structlog.stdlib.BoundLogger:
    configure_logging()
    return structlog.get_logger("devrun")


def log_event(message: str, **extra: Any) -> None:
    get_logger().info(message, **extra)


def log_warning(message: str, **extra: Any) -> None:
    get_logger().warning(message, **extra)


def log_error(message: str, **extra: Any) -> None:
    get_logger().error(message, **extra)
