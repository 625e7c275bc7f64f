"""Loguru sinks for the pipeline.

Two outputs:
- console: colorized single lines on stderr, for an interactive terminal
- json: one serialized record per line on stdout, for log shippers

Console lines carry the component and, when a record is bound to one,
the event id, so a post can be followed through classify and validate:

    14:05:12 | INFO     | pipeline [t3_quake] | Event alerted
"""

import sys
from typing import Optional

from loguru import logger

from eas_system.config.settings import settings
from eas_system.utils.logging import configure_structured_logging

_CONSOLE_HEAD = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[component]}</cyan>"


def _console_format(record) -> str:
    head = _CONSOLE_HEAD
    if "event_id" in record["extra"]:
        head += " <magenta>[{extra[event_id]}]</magenta>"
    tail = " | <level>{message}</level>\n"
    if record["exception"]:
        tail += "{exception}\n"
    return head + tail


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """
    (Re)install the loguru sinks and the structlog renderer.

    Args:
        level: Minimum level; defaults to settings.log_level
        fmt: "console" or "json"; defaults to settings.log_format.
             Console output falls back to json when stderr is not a TTY.
    """
    level = (level or settings.log_level).upper()
    fmt = (fmt or settings.log_format).lower()

    logger.remove()
    logger.configure(extra={"component": "eas"})

    if fmt == "console" and sys.stderr.isatty():
        logger.add(sys.stderr, format=_console_format, level=level, colorize=True)
    else:
        logger.add(sys.stdout, format="{message}", level=level, serialize=True, diagnose=False)

    configure_structured_logging(level=level, fmt=fmt)


def get_logger(component: str):
    """Logger bound to a component, e.g. get_logger("sources.usgs")."""
    return logger.bind(component=component)


configure_logging()

__all__ = ["logger", "get_logger", "configure_logging"]
