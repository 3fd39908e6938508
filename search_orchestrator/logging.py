"""Structured logging for the search orchestrator.

Production output is one JSON object per line; the testing/CLI output is a
compact human-readable line. Per-run fields (correlation id, query, focus mode)
live in structlog contextvars so every component logs them without threading
them through call signatures.
"""

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

import structlog
from structlog.types import EventDict, WrappedLogger

PACKAGE_PREFIX = "search_orchestrator"

# ============================================================================
# Configuration & Constants
# ============================================================================


class LogKeys(str, Enum):
    """Log field keys."""

    CORRELATION_ID = "correlation_id"
    QUERY = "query"
    FOCUS_MODE = "focus_mode"
    CONTEXT = "context"
    TIMESTAMP = "timestamp"
    LOGGER = "logger"
    MESSAGE = "message"
    LEVEL = "level"
    EXTRA = "extra"


@dataclass(frozen=True)
class LogDefaults:
    """Default values for logging configuration."""

    context: str = "orchestrator"
    correlation_id: str = "unknown"
    log_level: str = "INFO"
    max_value_length: int = 60
    query_display_length: int = 32
    correlation_id_display_length: int = 8


DEFAULTS = LogDefaults()

_STANDARD_FIELDS = (
    LogKeys.TIMESTAMP.value,
    LogKeys.LOGGER.value,
    LogKeys.MESSAGE.value,
    LogKeys.CONTEXT.value,
    LogKeys.LEVEL.value,
)


# ============================================================================
# Context Operations
# ============================================================================


def _get_context_value(key: str, default: str) -> str:
    return str(structlog.contextvars.get_contextvars().get(key, default))


def get_correlation_id() -> str:
    """Correlation id of the orchestration run bound to the current context."""
    return _get_context_value(LogKeys.CORRELATION_ID.value, DEFAULTS.correlation_id)


# ============================================================================
# Log Processing
# ============================================================================


def _process_log_fields(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Move every non-standard key under ``extra`` and rename ``event`` to ``message``."""
    event_dict[LogKeys.MESSAGE.value] = event_dict.pop("event", "")
    event_dict[LogKeys.CONTEXT.value] = _get_context_value(LogKeys.CONTEXT.value, DEFAULTS.context)
    correlation_id = get_correlation_id()

    extra_fields = {key: event_dict.pop(key) for key in list(event_dict.keys()) if key not in _STANDARD_FIELDS}
    if correlation_id != DEFAULTS.correlation_id:
        extra_fields[LogKeys.CORRELATION_ID.value] = correlation_id

    if extra_fields:
        event_dict[LogKeys.EXTRA.value] = extra_fields

    return event_dict


class HumanReadableFormatter:
    """structlog renderer producing ``HH:MM:SS [LEVEL] logger: message [k=v, ...] <focus "query"> [id:xxxx]``.

    Run fields bound by ``run_context`` are shown as one tag instead of in the
    key=value list.
    """

    def __init__(self, defaults: LogDefaults = DEFAULTS):
        self.defaults = defaults

    def __call__(self, _: WrappedLogger, __: str, event_dict: EventDict) -> str:
        level = event_dict.get(LogKeys.LEVEL.value, "info").upper()
        logger_name = self.format_logger_name(event_dict.get(LogKeys.LOGGER.value, ""))
        message = event_dict.get(LogKeys.MESSAGE.value, "")
        extra = dict(event_dict.get(LogKeys.EXTRA.value, {}))

        time_str = self.format_timestamp(event_dict.get(LogKeys.TIMESTAMP.value, ""))
        corr_str = self.format_correlation_id(extra.pop(LogKeys.CORRELATION_ID.value, ""))
        run_str = self.format_run_tag(extra.pop(LogKeys.FOCUS_MODE.value, ""), extra.pop(LogKeys.QUERY.value, ""))
        extra_str = self.format_extra_fields(extra)

        return f"{time_str} [{level}] {logger_name}: {message}{extra_str}{run_str}{corr_str}"

    def format_field_value(self, value: Any) -> str:
        str_value = str(value)
        if len(str_value) > self.defaults.max_value_length:
            return f"{str_value[: self.defaults.max_value_length - 3]}..."
        return str_value

    def format_timestamp(self, timestamp_str: str) -> str:
        if not timestamp_str:
            return ""
        try:
            dt = datetime.fromisoformat(timestamp_str.replace("Z", "+00:00"))
            return dt.strftime("%H:%M:%S")
        except (ValueError, AttributeError):
            return timestamp_str.split("T")[1][:8] if "T" in timestamp_str else ""

    def format_correlation_id(self, correlation_id: str) -> str:
        if not correlation_id:
            return ""
        return f" [id:{correlation_id[: self.defaults.correlation_id_display_length]}]"

    def format_run_tag(self, focus_mode: str, query: str) -> str:
        if not focus_mode and not query:
            return ""
        parts = [str(focus_mode)] if focus_mode else []
        if query:
            text = str(query)
            limit = self.defaults.query_display_length
            parts.append(f'"{text[: limit - 3]}..."' if len(text) > limit else f'"{text}"')
        return f" <{' '.join(parts)}>"

    def format_logger_name(self, logger_name: str) -> str:
        """Drop the package prefix, keeping the last two dotted parts."""
        if not logger_name.startswith(PACKAGE_PREFIX):
            return logger_name

        parts = logger_name.removeprefix(f"{PACKAGE_PREFIX}.").split(".")
        if len(parts) >= 2:
            return f"{parts[-2]}.{parts[-1]}"
        return parts[-1] or logger_name

    def format_extra_fields(self, extra: dict[str, Any]) -> str:
        if not extra:
            return ""
        formatted_parts = [f"{key}={self.format_field_value(value)}" for key, value in extra.items()]
        return f" [{', '.join(formatted_parts)}]"


# ============================================================================
# Configuration
# ============================================================================


def configure_structlog(testing: bool = False) -> None:
    """Configure structlog; ``LOGGING_LEVEL`` selects the level, ``testing`` the renderer."""
    log_level = os.environ.get("LOGGING_LEVEL", DEFAULTS.log_level).upper()
    level = getattr(logging, log_level, logging.INFO)

    logging.basicConfig(format="%(message)s", level=level, stream=sys.stdout)
    logging.getLogger().setLevel(level)

    processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.contextvars.merge_contextvars,
        _process_log_fields,
        structlog.processors.TimeStamper(fmt="iso"),
        HumanReadableFormatter() if testing else structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,  # type: ignore[arg-type]
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )


# ============================================================================
# Public API
# ============================================================================


@contextmanager
def run_context(**kwargs: Any) -> Iterator[None]:
    """Bind fields for the duration of one orchestration run, restoring the previous values after."""
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield


def get_logger(name: str = "") -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name or __name__)  # type: ignore
