"""Structlog-based logging for Bayes Linkage.

Library code logs through structlog only; no print() in library code.
Events are dotted names (``gibbs.fit_started``) with keyword context.
"""
from __future__ import annotations

from typing import Any, Literal

import logging
import structlog

from .config import CONFIG

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def configure_logging(level: LogLevel | str = "INFO", json_output: bool = True) -> None:
    """Configure structlog for the package.

    Args:
        level: Minimum level emitted
        json_output: JSON lines (default) or the human-readable console renderer
    """
    numeric_level = getattr(logging, str(level).upper())
    logging.basicConfig(format="%(message)s", level=numeric_level)

    renderer: Any = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str = "bayes_linkage"):
    return structlog.get_logger(name)


def fit_context(**context: Any):
    """Context manager attaching ``context`` (e.g. a fit id) to every event inside it."""
    return structlog.contextvars.bound_contextvars(**context)


# Initialize default config
configure_logging(CONFIG.log_level)
