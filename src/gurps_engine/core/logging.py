"""Structured logging configuration for the GURPS character engine.

Logging goes through structlog so that recalculation diagnostics carry
structured context (entity id, iteration, element names) in both the
human-readable console format and the JSON format. Level, format and an
optional log file come from ``LoggingSettings`` unless overridden.

Example:
    >>> from gurps_engine.core.logging import entity_context, get_logger
    >>> logger = get_logger(__name__)
    >>> with entity_context("A123"):
    ...     logger.info("Recalculated", iterations=2)
"""

from __future__ import annotations

import logging
import sys

from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog
from structlog.types import Processor

from gurps_engine.core.fixed import fixed_str


if TYPE_CHECKING:
    from structlog.types import EventDict, WrappedLogger

    from gurps_engine.core.config import LoggingSettings


ENGINE_NAME = "gurps_engine"
_STDLIB_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


# =============================================================================
# Processors
# =============================================================================


def add_engine_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Tag every entry with the engine name."""
    event_dict.setdefault("engine", ENGINE_NAME)
    return event_dict


def render_decimals(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Render fixed-point values as plain numbers.

    Levels, points and weights are ``Decimal`` values; without this they
    reach the JSON output as ``"Decimal('10.5')"``.

    Args:
        logger: The wrapped logger instance.
        method_name: Name of the logging method called.
        event_dict: The event dictionary to modify.

    Returns:
        The event dictionary with ``Decimal`` values replaced by strings.
    """
    for key, value in event_dict.items():
        if isinstance(value, Decimal):
            event_dict[key] = fixed_str(value)
    return event_dict


# =============================================================================
# Configuration
# =============================================================================


def configure_logging(
    settings: LoggingSettings | None = None,
    *,
    level: str | None = None,
    json_format: bool | None = None,
    log_file: str | None = None,
) -> None:
    """Configure engine-wide logging.

    Args:
        settings: Logging settings; defaults to the application settings.
        level: Overrides the configured level (DEBUG, INFO, WARNING, ERROR,
            CRITICAL).
        json_format: Overrides the configured output format.
        log_file: Overrides the configured log file path.

    Example:
        >>> configure_logging(level="DEBUG", json_format=False)
    """
    if settings is None:
        from gurps_engine.core.config import get_settings

        settings = get_settings().log
    level = level or settings.level
    if json_format is None:
        json_format = settings.json_format
    log_file = log_file or settings.log_file

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_engine_context,
        render_decimals,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(
                colors=sys.stdout.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format=_STDLIB_FORMAT, level=numeric_level, stream=sys.stdout, force=True)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter(_STDLIB_FORMAT))
        logging.getLogger().addHandler(file_handler)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a configured logger instance.

    Args:
        name: Optional name for the logger (typically __name__).

    Returns:
        A configured structlog BoundLogger instance.
    """
    return structlog.get_logger(name)


@contextmanager
def entity_context(entity_id: str) -> Iterator[None]:
    """Bind the entity id to every log entry made inside the block.

    Example:
        >>> with entity_context(entity.id):
        ...     logger.warning("Recalculation did not converge")
    """
    with structlog.contextvars.bound_contextvars(entity_id=entity_id):
        yield


__all__ = [
    "ENGINE_NAME",
    "add_engine_context",
    "render_decimals",
    "configure_logging",
    "get_logger",
    "entity_context",
]
