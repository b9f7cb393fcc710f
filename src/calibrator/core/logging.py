"""Structured logging infrastructure for Calibrator.

Provides structured logging using structlog with Calibrator-specific context
such as the session id and the component name. Console output always goes to
stderr so that the hook and ``create-skill`` keep stdout free for their single
result line.

Example usage:
    from calibrator.core.logging import get_logger, configure_logging

    # Configure once at startup
    configure_logging(level="DEBUG", format="console")

    # Get a component-specific logger
    logger = get_logger("skills.promoter")

    # Log with key/value fields
    logger.info("skill_created", skill_dir="/repo/.claude/skills/foo")

    # Correlate every entry of a hook invocation
    ctx = HookContext(session_id="abc-123", tool_name="Bash")
    with with_context(ctx):
        logger.warning("observation_record_failed")  # includes session_id
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Literal

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Sensitive field patterns that should never be logged
SENSITIVE_PATTERNS = frozenset({
    "api_key",
    "apikey",
    "api-key",
    "token",
    "secret",
    "password",
    "credential",
    "auth",
    "bearer",
    "authorization",
})

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console", "both"]


@dataclass(frozen=True)
class HookContext:
    """Immutable context for correlating log entries of one hook invocation.

    Attributes:
        session_id: Session identifier from the hook payload, if any.
        tool_name: Name of the tool whose result triggered the hook.
        component: Component handling the event.
    """

    session_id: str | None = None
    tool_name: str | None = None
    component: str = "hook"

    def to_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for logging (excludes None values)."""
        result: dict[str, Any] = {"component": self.component}
        if self.session_id is not None:
            result["session_id"] = self.session_id
        if self.tool_name is not None:
            result["tool_name"] = self.tool_name
        return result


_current_context: ContextVar[HookContext | None] = ContextVar(
    "calibrator_context", default=None
)


def get_current_context() -> HookContext | None:
    """Get the current HookContext if set."""
    return _current_context.get()


@contextmanager
def with_context(ctx: HookContext) -> Iterator[HookContext]:
    """Set the HookContext for the duration of a block.

    Args:
        ctx: The HookContext to use for the block.

    Yields:
        The HookContext that was set.
    """
    token = _current_context.set(ctx)
    try:
        yield ctx
    finally:
        _current_context.reset(token)


def _sanitize_value(key: str, value: Any) -> Any:
    """Return ``"[REDACTED]"`` for sensitive keys, the value otherwise."""
    key_lower = key.lower()
    for pattern in SENSITIVE_PATTERNS:
        if pattern in key_lower:
            return "[REDACTED]"
    return value


def _sanitize_event_dict(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that redacts sensitive fields, one level deep."""
    sanitized: EventDict = {}
    for key, value in event_dict.items():
        if isinstance(value, dict):
            sanitized[key] = {
                k: _sanitize_value(k, v) for k, v in value.items()
            }
        else:
            sanitized[key] = _sanitize_value(key, value)
    return sanitized


def _add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that adds an ISO8601 UTC timestamp."""
    event_dict["timestamp"] = datetime.now(UTC).isoformat()
    return event_dict


def _add_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that adds HookContext fields to log entries.

    Explicitly bound fields take precedence over context fields.
    """
    ctx = get_current_context()
    if ctx is not None:
        for key, value in ctx.to_dict().items():
            if key not in event_dict:
                event_dict[key] = value
    return event_dict


class CalibratorLogger:
    """Calibrator logger wrapper around structlog.

    The logger is bound to a component name and fetches the underlying
    structlog logger lazily, so loggers created at import time still respect
    a later ``configure_logging()`` call.
    """

    def __init__(self, component: str, **initial_context: Any) -> None:
        self._component = component
        self._context: dict[str, Any] = {"component": component, **initial_context}

    def _get_logger(self) -> structlog.stdlib.BoundLogger:
        logger: structlog.stdlib.BoundLogger = structlog.get_logger().bind(**self._context)
        return logger

    def bind(self, **context: Any) -> CalibratorLogger:
        """Create a new logger with additional bound context."""
        new_logger = CalibratorLogger.__new__(CalibratorLogger)
        new_logger._component = self._component
        new_logger._context = {**self._context, **context}
        return new_logger

    def debug(self, event: str, **kw: Any) -> None:
        self._get_logger().debug(event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._get_logger().info(event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._get_logger().warning(event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._get_logger().error(event, **kw)


def _get_processors(
    renderer: Processor,
    include_timestamps: bool,
    include_context: bool,
) -> list[Processor]:
    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        _sanitize_event_dict,
    ]

    if include_context:
        processors.append(_add_context)

    if include_timestamps:
        processors.append(_add_timestamp)

    processors.extend([
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        renderer,
    ])
    return processors


def configure_logging(
    level: LogLevel = "WARNING",
    format: LogFormat = "console",  # noqa: A002
    file_path: Path | None = None,
    max_file_size_mb: int = 10,
    backup_count: int = 3,
    include_timestamps: bool = True,
    include_context: bool = True,
) -> None:
    """Configure Calibrator structured logging.

    Args:
        level: Minimum log level to capture.
        format: "console" for human-readable stderr output, "json" for
            structured output (to ``file_path`` if given, else stderr),
            "both" for console on stderr plus JSON lines in ``file_path``.
        file_path: Optional log file. Required if format="both".
        max_file_size_mb: Maximum log file size before rotation (MB).
        backup_count: Number of rotated log files to keep.
        include_timestamps: Whether to include ISO8601 timestamps.
        include_context: Whether to include HookContext fields.

    Raises:
        ValueError: If format="both" but file_path is not provided.
            Also raised for an unknown level or format.
    """
    if format == "both" and file_path is None:
        raise ValueError("file_path is required when format='both'")

    log_level = logging.getLevelNamesMapping().get(str(level).upper())
    if log_level is None:
        raise ValueError(f"Unknown log level: {level}")
    if format not in ("console", "json", "both"):
        raise ValueError(f"Unknown log format: {format}")
    handlers: list[logging.Handler] = []

    if format in ("console", "both"):
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        handlers.append(console_handler)

    if format in ("json", "both"):
        if file_path is not None:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                file_path,
                maxBytes=max_file_size_mb * 1024 * 1024,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(log_level)
            handlers.append(file_handler)
        else:
            json_handler = logging.StreamHandler(sys.stderr)
            json_handler.setLevel(log_level)
            handlers.append(json_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        root_logger.addHandler(handler)

    if format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    # cache_logger_on_first_use=False so module-level loggers follow reconfiguration
    structlog.configure(
        processors=_get_processors(renderer, include_timestamps, include_context),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(component: str, **initial_context: Any) -> CalibratorLogger:
    """Get a Calibrator logger for a component.

    Args:
        component: The component name (e.g., "store", "skills.promoter").
        **initial_context: Additional context to bind.
    """
    return CalibratorLogger(component, **initial_context)


__all__ = [
    "CalibratorLogger",
    "HookContext",
    "LogFormat",
    "LogLevel",
    "SENSITIVE_PATTERNS",
    "configure_logging",
    "get_current_context",
    "get_logger",
    "with_context",
]
