import logging
import os
import sys
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

import structlog
from structlog.types import EventDict, WrappedLogger

# ============================================================================
# Configuration & Constants
# ============================================================================

PACKAGE_PREFIX = "research_swarm"


class LogKeys(str, Enum):
    """Field keys used by the research engine's log records."""

    CORRELATION_ID = "correlation_id"
    SESSION_ID = "session_id"
    TASK_ID = "task_id"
    CONTEXT = "context"
    TIMESTAMP = "timestamp"
    LOGGER = "logger"
    MESSAGE = "message"
    LEVEL = "level"
    EXTRA = "extra"


@dataclass(frozen=True)
class LogDefaults:
    """Default values for logging configuration."""

    context: str = "engine"
    correlation_id: str = "unknown"
    log_level: str = "INFO"
    max_value_length: int = 60
    id_display_length: int = 8


DEFAULTS = LogDefaults()

# Context variables promoted into every record when bound
_SCOPED_KEYS = (LogKeys.CORRELATION_ID.value, LogKeys.SESSION_ID.value, LogKeys.TASK_ID.value)


# ============================================================================
# Context Operations
# ============================================================================


def _get_context_value(key: str, default: str) -> str:
    return str(structlog.contextvars.get_contextvars().get(key, default))


def get_correlation_id() -> str:
    """Get current correlation ID from context."""
    return _get_context_value(LogKeys.CORRELATION_ID.value, DEFAULTS.correlation_id)


# ============================================================================
# Log Processing
# ============================================================================


def _process_log_fields(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Move the event into ``message`` and everything non-standard into ``extra``."""
    event_dict[LogKeys.MESSAGE.value] = event_dict.pop("event", "")
    event_dict[LogKeys.CONTEXT.value] = _get_context_value(LogKeys.CONTEXT.value, DEFAULTS.context)

    standard_fields = (
        LogKeys.TIMESTAMP.value,
        LogKeys.LOGGER.value,
        LogKeys.MESSAGE.value,
        LogKeys.CONTEXT.value,
        LogKeys.LEVEL.value,
    )
    extra_fields = {key: event_dict.pop(key) for key in list(event_dict.keys()) if key not in standard_fields}

    # merge_contextvars already copied bound keys; drop the correlation id when it is only the default
    if extra_fields.get(LogKeys.CORRELATION_ID.value) == DEFAULTS.correlation_id:
        extra_fields.pop(LogKeys.CORRELATION_ID.value)

    if extra_fields:
        event_dict[LogKeys.EXTRA.value] = extra_fields

    return event_dict


# ============================================================================
# Human-Readable Formatting
# ============================================================================


class HumanReadableFormatter:
    """Render records as ``HH:MM:SS [LEVEL] logger: message [k=v] [session:id]``."""

    def __init__(self, defaults: LogDefaults = DEFAULTS):
        self.defaults = defaults

    def __call__(self, _: WrappedLogger, __: str, event_dict: EventDict) -> str:
        level = event_dict.get(LogKeys.LEVEL.value, "info").upper()
        logger_name = self.format_logger_name(event_dict.get(LogKeys.LOGGER.value, ""))
        message = event_dict.get(LogKeys.MESSAGE.value, "")
        timestamp = event_dict.get(LogKeys.TIMESTAMP.value, "")
        extra = dict(event_dict.get(LogKeys.EXTRA.value, {}))

        scoped = {key: extra.pop(key) for key in _SCOPED_KEYS if key in extra}

        time_str = self.format_timestamp(timestamp)
        extra_str = self.format_extra_fields(extra)
        scope_str = self.format_scope(scoped)

        return f"{time_str} [{level}] {logger_name}: {message}{extra_str}{scope_str}"

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

    def format_scope(self, scoped: dict[str, Any]) -> str:
        """Show session/task/correlation ids as short tags at the end of the line."""
        labels = {
            LogKeys.SESSION_ID.value: "session",
            LogKeys.TASK_ID.value: "task",
            LogKeys.CORRELATION_ID.value: "id",
        }
        parts = [
            f" [{labels[key]}:{str(value)[-self.defaults.id_display_length :]}]"
            for key, value in scoped.items()
            if value
        ]
        return "".join(parts)

    def format_logger_name(self, logger_name: str) -> str:
        if not logger_name.startswith(PACKAGE_PREFIX):
            return logger_name

        parts = logger_name.removeprefix(f"{PACKAGE_PREFIX}.").split(".")
        if len(parts) >= 2:
            return f"{parts[-2]}.{parts[-1]}"
        return parts[-1] if parts else logger_name

    def format_extra_fields(self, extra: dict[str, Any]) -> str:
        if not extra:
            return ""

        formatted_parts = [f"{key}={self.format_field_value(value)}" for key, value in extra.items()]
        return f" [{', '.join(formatted_parts)}]"


# ============================================================================
# Configuration
# ============================================================================


def configure_structlog(testing: bool = False) -> None:
    """Configure structured logging with JSON or human-readable output format."""
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


def clear_context_fields() -> None:
    structlog.contextvars.clear_contextvars()


def bind_context_vars(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def bound_context(**kwargs: Any) -> Any:
    """Bind context variables for the duration of a ``with`` block.

    Each asyncio task copies the context on creation, so ids bound inside a
    worker never leak into the coordinator or sibling workers.
    """
    return structlog.contextvars.bound_contextvars(**kwargs)


def get_context_vars() -> dict[str, Any]:
    return structlog.contextvars.get_contextvars()


def get_logger(name: str = "") -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name or __name__)  # type: ignore
