"""Tests for configuration management."""

from __future__ import annotations

from pathlib import Path

import pytest

from gurps_engine.core.config import (
    RecalcSettings,
    Settings,
    SheetDefaultsSettings,
    clear_settings_cache,
    get_settings,
)
from gurps_engine.core.exceptions import ConfigurationError
from gurps_engine.models import DamageProgression, SheetSettings, WeightUnit


class TestRecalcSettings:
    """Tests for RecalcSettings configuration."""

    def test_default_values(self) -> None:
        """Test default recalculation settings."""
        settings = RecalcSettings()

        assert settings.max_iterations == 5
        assert settings.warn_on_non_convergence is True

    def test_single_pass_with_warning_rejected(self) -> None:
        """Test that a cap of one cannot be combined with warnings."""
        with pytest.raises(ConfigurationError) as exc_info:
            RecalcSettings(max_iterations=1, warn_on_non_convergence=True)

        assert "max_iterations" in str(exc_info.value)

    def test_single_pass_without_warning_allowed(self) -> None:
        """Test that a single pass is fine when warnings are off."""
        settings = RecalcSettings(max_iterations=1, warn_on_non_convergence=False)

        assert settings.max_iterations == 1


class TestSheetDefaultsSettings:
    """Tests for SheetDefaultsSettings and seeding sheet settings."""

    def test_seeds_sheet_settings(self) -> None:
        """Test that new sheet settings follow the configured defaults."""
        defaults = SheetDefaultsSettings(
            damage_progression="knowing_your_own_strength",
            default_weight_units="kg",
            use_multiplicative_modifiers=True,
        )

        sheet = SheetSettings.from_defaults(defaults)

        assert sheet.damage_progression is DamageProgression.KNOWING_YOUR_OWN_STRENGTH
        assert sheet.default_weight_units is WeightUnit.KILOGRAM
        assert sheet.use_multiplicative_modifiers is True
        assert sheet.attribute_def("st") is not None


class TestSettings:
    """Tests for main Settings configuration."""

    def test_default_settings(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test default settings initialization."""
        monkeypatch.chdir(tmp_path)

        settings = Settings()

        assert settings.app_name == "GURPS Character Engine"
        assert settings.app_version == "0.1.0"
        assert settings.debug is False
        assert settings.recalc.max_iterations == 5
        assert settings.log.level == "INFO"

    def test_environment_overrides(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        mock_env_vars: dict[str, str],
    ) -> None:
        """Test nested settings read their own environment prefixes."""
        monkeypatch.chdir(tmp_path)

        settings = Settings()

        assert settings.debug is True
        assert settings.recalc.max_iterations == 7
        assert settings.sheet.damage_progression == "knowing_your_own_strength"
        assert settings.log.level == "DEBUG"


class TestGetSettings:
    """Tests for get_settings singleton function."""

    def test_returns_cached_instance(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that get_settings returns the same instance."""
        monkeypatch.chdir(tmp_path)

        assert get_settings() is get_settings()

    def test_clear_cache_reloads(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that clearing the cache picks up new environment values."""
        monkeypatch.chdir(tmp_path)
        first = get_settings()

        monkeypatch.setenv("GURPS_ENGINE_RECALC_MAX_ITERATIONS", "9")
        clear_settings_cache()
        second = get_settings()

        assert second is not first
        assert second.recalc.max_iterations == 9

    def test_invalid_environment_raises_configuration_error(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that invalid values surface as ConfigurationError."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("GURPS_ENGINE_RECALC_MAX_ITERATIONS", "0")

        with pytest.raises(ConfigurationError):
            get_settings()
