"""Configuration management for the GURPS character engine.

This module provides centralized configuration using pydantic-settings,
supporting environment variables, .env files, and runtime overrides.

Engine calculators never read these settings directly. The recalculation
driver receives a ``RecalcSettings`` value and new sheets are seeded from
``SheetDefaultsSettings``; both are passed explicitly.

Example:
    >>> from gurps_engine.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.recalc.max_iterations
    5

Environment Variables:
    GURPS_ENGINE_RECALC_MAX_ITERATIONS: Cap on feature/level iterations
    GURPS_ENGINE_RECALC_WARN_ON_NON_CONVERGENCE: Log when the cap is hit
    GURPS_ENGINE_SHEET_DAMAGE_PROGRESSION: Default damage progression
    GURPS_ENGINE_SHEET_USE_MULTIPLICATIVE_MODIFIERS: Default modifier policy
    GURPS_ENGINE_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gurps_engine.core.exceptions import ConfigurationError


class RecalcSettings(BaseSettings):
    """Configuration for the recalculation driver.

    Attributes:
        max_iterations: Maximum feature/prerequisite/level passes per recalculation.
        warn_on_non_convergence: Log a warning when the cap is reached while
            levels are still changing.
    """

    model_config = SettingsConfigDict(
        env_prefix="GURPS_ENGINE_RECALC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_iterations: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum recalculation passes",
    )
    warn_on_non_convergence: bool = Field(
        default=True,
        description="Warn when the iteration cap is exhausted",
    )

    @model_validator(mode="after")
    def validate_iteration_cap(self) -> "RecalcSettings":
        """Ensure non-convergence warnings can ever be meaningful.

        A single pass can never observe a second change, so warning about
        non-convergence with a cap of one is a configuration mistake.

        Returns:
            Self if validation passes.

        Raises:
            ConfigurationError: If warnings are enabled with a cap of one.
        """
        if self.warn_on_non_convergence and self.max_iterations == 1:
            raise ConfigurationError(
                "warn_on_non_convergence requires max_iterations > 1",
                config_key="max_iterations",
            )
        return self


class SheetDefaultsSettings(BaseSettings):
    """Defaults applied to the settings of newly created sheets.

    Attributes:
        damage_progression: Thrust/swing and basic lift progression.
        use_multiplicative_modifiers: Compose trait enhancements and
            limitations multiplicatively instead of additively.
        use_half_stat_defaults: Attribute defaults use half the attribute plus 5.
        default_weight_units: Units used to report weights.
        exclude_unspent_points_from_total: Whether unspent points are hidden.
    """

    model_config = SettingsConfigDict(
        env_prefix="GURPS_ENGINE_SHEET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    damage_progression: Literal[
        "basic_set",
        "knowing_your_own_strength",
        "no_school_grognard_damage",
        "thrust_equals_swing_minus_2",
    ] = Field(
        default="basic_set",
        description="Damage progression",
    )
    use_multiplicative_modifiers: bool = Field(
        default=False,
        description="Use multiplicative trait modifiers",
    )
    use_half_stat_defaults: bool = Field(
        default=False,
        description="Use half-stat attribute defaults",
    )
    default_weight_units: Literal["lb", "oz", "kg", "g"] = Field(
        default="lb",
        description="Default weight units",
    )
    exclude_unspent_points_from_total: bool = Field(
        default=False,
        description="Exclude unspent points from the total",
    )


class LoggingSettings(BaseSettings):
    """Configuration for structured logging.

    Attributes:
        level: Logging level.
        json_format: Emit JSON lines instead of console output.
        log_file: Optional path to a log file.
    """

    model_config = SettingsConfigDict(
        env_prefix="GURPS_ENGINE_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_format: bool = Field(
        default=False,
        description="Emit JSON logs",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional log file path",
    )


class Settings(BaseSettings):
    """Main engine settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        recalc: Recalculation driver settings.
        sheet: Defaults for new sheets.
        log: Logging settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="GURPS_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="GURPS Character Engine",
        description="Application name",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    recalc: RecalcSettings = Field(default_factory=RecalcSettings)
    sheet: SheetDefaultsSettings = Field(default_factory=SheetDefaultsSettings)
    log: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the engine settings singleton.

    Returns:
        The cached Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load engine settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "RecalcSettings",
    "SheetDefaultsSettings",
    "LoggingSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
