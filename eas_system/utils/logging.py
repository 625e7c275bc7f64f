"""Structured logging utilities using structlog for pipeline tracing.

Validation, fusion, storage and lifecycle code logs event-name style
messages (``"source_failed"``, ``"event_alerted"``) with keyword context.
Everything funnels through :func:`get_structured_logger` so the processor
chain below is configured before the first log call.
"""

import sys
import uuid
from typing import Any, Optional
import structlog
from structlog.processors import JSONRenderer
from structlog.contextvars import bind_contextvars, clear_contextvars, merge_contextvars

from eas_system.config.settings import settings


def configure_structured_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """
    Configure structlog processors and renderer.

    Args:
        level: Minimum level; defaults to settings.log_level
        fmt: "console" or "json"; defaults to settings.log_format

    Uses:
    - Console renderer for development (colorized, human-readable)
    - JSON renderer for production (structured, machine-readable)
    - Context variables so an event_id bound at task start follows every
      log line emitted while that task runs
    """
    processors = [
        merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    level = (level or settings.log_level).upper()
    fmt = (fmt or settings.log_format).lower()

    if fmt == "console" and sys.stderr.isatty():
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )
    else:
        processors.append(JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        # Loggers are created at import time; reconfiguring must reach them.
        cache_logger_on_first_use=False,
    )


def get_structured_logger(
    component: str,
    **additional_context: Any,
) -> structlog.BoundLogger:
    """
    Get a structlog logger bound to a component name.

    Args:
        component: Component name (e.g., "ValidationAgent")
        **additional_context: Extra key/values bound to every message

    Returns:
        BoundLogger with component context

    Example:
        >>> log = get_structured_logger("ConfidenceFusionEngine")
        >>> log.info("fusion_complete", confidence=90.0, confirmed=True)
    """
    logger = structlog.get_logger().bind(component=component)
    if additional_context:
        logger = logger.bind(**additional_context)
    return logger


def get_correlation_id() -> str:
    """Generate a correlation ID for tracing one pipeline task."""
    return str(uuid.uuid4())


def bind_task_context(
    event_id: str,
    task_kind: str,
    correlation_id: Optional[str] = None,
) -> str:
    """
    Bind event/task identifiers into structlog context variables.

    Args:
        event_id: Event being processed
        task_kind: Task kind ("classify" or "validate")
        correlation_id: Existing correlation id, generated when omitted

    Returns:
        The correlation id in effect
    """
    correlation_id = correlation_id or get_correlation_id()
    bind_contextvars(
        event_id=event_id,
        task_kind=task_kind,
        correlation_id=correlation_id,
    )
    return correlation_id


def clear_task_context() -> None:
    """Drop task context variables once a task finishes."""
    clear_contextvars()


configure_structured_logging()


__all__ = [
    "get_structured_logger",
    "get_correlation_id",
    "bind_task_context",
    "clear_task_context",
    "configure_structured_logging",
]
