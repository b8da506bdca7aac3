"""Structured logging configuration using structlog.

Components never reach for a global logger when reporting bad input: they
accept a ``DiagnosticReporter`` and fall back to ``get_logger`` only when
the caller does not inject one.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Protocol

import structlog


class DiagnosticReporter(Protocol):
    """Anything that can record a warning with structured context.

    A structlog bound logger satisfies this protocol as-is.
    """

    def warning(self, event: str, **kw: Any) -> Any: ...


def setup_logging(level: str = "info", json_output: bool = True) -> None:
    """Configure structlog for JSON (or console, for local runs) output to stderr."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    renderer: Any = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str, **context: Any) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name and optional extra context."""
    return structlog.get_logger(component=component, **context)  # type: ignore[return-value]
