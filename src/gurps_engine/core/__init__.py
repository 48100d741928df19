"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        GurpsEngineError: Base exception for all engine errors.
        ConfigurationError: Configuration-related errors.
        ValidationError: Element data validation errors.
        DataIntegrityError: Unrecoverable data states.
        DataVersionError: Unsupported persisted data version.

    Configuration:
        Settings: Main engine settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up structured logging.
        get_logger: Get a configured logger instance.
        entity_context: Bind an entity id to log entries in a block.
"""

from __future__ import annotations

from gurps_engine.core.config import (
    LoggingSettings,
    RecalcSettings,
    Settings,
    SheetDefaultsSettings,
    clear_settings_cache,
    get_settings,
)
from gurps_engine.core.exceptions import (
    ConfigurationError,
    DataIntegrityError,
    DataVersionError,
    DiceError,
    EngineError,
    ExpressionError,
    GurpsEngineError,
    ValidationError,
)
from gurps_engine.core.logging import configure_logging, entity_context, get_logger


__all__ = [
    # Base exception
    "GurpsEngineError",
    # Configuration and validation exceptions
    "ConfigurationError",
    "ValidationError",
    "DiceError",
    # Data exceptions
    "DataIntegrityError",
    "DataVersionError",
    # Engine exceptions
    "EngineError",
    "ExpressionError",
    # Configuration
    "Settings",
    "RecalcSettings",
    "SheetDefaultsSettings",
    "LoggingSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "entity_context",
]
