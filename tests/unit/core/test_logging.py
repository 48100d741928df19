"""Tests for structured logging configuration."""

from __future__ import annotations

import logging

from decimal import Decimal
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
import structlog

from gurps_engine.core.config import LoggingSettings
from gurps_engine.core.logging import (
    ENGINE_NAME,
    add_engine_context,
    configure_logging,
    entity_context,
    render_decimals,
)


if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture(autouse=True)
def restore_logging() -> Generator[None, None, None]:
    """Put structlog and the root logger back after each test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    structlog.reset_defaults()
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


def _wrapper_for(level: int) -> type:
    return structlog.make_filtering_bound_logger(level)


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_level_from_application_settings(self, mock_env_vars: dict[str, str]) -> None:
        """Test that the configured level comes from the environment by default."""
        configure_logging()

        assert structlog.get_config()["wrapper_class"] is _wrapper_for(logging.DEBUG)

    def test_explicit_settings(self) -> None:
        """Test that passed settings pick the level and renderer."""
        configure_logging(LoggingSettings(level="WARNING", json_format=True))
        config = structlog.get_config()

        assert config["wrapper_class"] is _wrapper_for(logging.WARNING)
        assert isinstance(config["processors"][-1], structlog.processors.JSONRenderer)

    def test_arguments_override_settings(self) -> None:
        """Test that keyword arguments win over the settings."""
        configure_logging(LoggingSettings(level="WARNING", json_format=True), level="ERROR", json_format=False)
        config = structlog.get_config()

        assert config["wrapper_class"] is _wrapper_for(logging.ERROR)
        assert isinstance(config["processors"][-1], structlog.dev.ConsoleRenderer)

    def test_log_file_handler(self, tmp_path: Path) -> None:
        """Test that a configured log file gets a handler."""
        path = tmp_path / "engine.log"

        configure_logging(LoggingSettings(log_file=str(path)))

        assert any(
            isinstance(handler, logging.FileHandler) and handler.baseFilename == str(path)
            for handler in logging.getLogger().handlers
        )


class TestProcessors:
    """Tests for the engine's log processors."""

    def test_decimals_rendered_plainly(self) -> None:
        """Test that fixed-point values become plain number strings."""
        event = render_decimals(None, "info", {"event": "Level", "level": Decimal("10.50"), "count": 3})

        assert event == {"event": "Level", "level": "10.5", "count": 3}

    def test_engine_name_added(self) -> None:
        """Test that entries are tagged with the engine name."""
        event = add_engine_context(None, "info", {"event": "Recalculated"})

        assert event["engine"] == ENGINE_NAME


class TestEntityContext:
    """Tests for binding the entity id."""

    def test_bound_only_inside_block(self) -> None:
        """Test that the entity id is bound for the block and removed afterwards."""
        with entity_context("A123"):
            assert structlog.contextvars.get_contextvars()["entity_id"] == "A123"

        assert "entity_id" not in structlog.contextvars.get_contextvars()
