"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

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


class TestGurpsEngineError:
    """Tests for the base GurpsEngineError exception."""

    def test_basic_message(self) -> None:
        """Test exception with basic message."""
        exc = GurpsEngineError("Test error message")
        assert exc.message == "Test error message"
        assert exc.details == {}
        assert str(exc) == "Test error message"

    def test_with_details(self) -> None:
        """Test exception with additional details."""
        exc = GurpsEngineError("Test error", details={"key": "value", "count": 42})
        assert exc.details == {"key": "value", "count": 42}
        assert "key='value'" in str(exc)
        assert "count=42" in str(exc)

    def test_repr(self) -> None:
        """Test exception repr output."""
        repr_str = repr(GurpsEngineError("Test", details={"x": 1}))
        assert "GurpsEngineError" in repr_str
        assert "Test" in repr_str


class TestSpecializedExceptions:
    """Tests for the keyword context each subclass records."""

    def test_configuration_error_key(self) -> None:
        """Test ConfigurationError with config key."""
        exc = ConfigurationError("Bad value", config_key="max_iterations")
        assert exc.details["config_key"] == "max_iterations"

    def test_validation_error_field(self) -> None:
        """Test ValidationError with field name and value."""
        exc = ValidationError("Malformed identifier", field_name="id", invalid_value="x")
        assert exc.details["field_name"] == "id"
        assert exc.details["invalid_value"] == "x"

    def test_dice_error_is_validation_error(self) -> None:
        """Test DiceError records the expression."""
        exc = DiceError("Invalid dice notation", expression="2q")
        assert isinstance(exc, ValidationError)
        assert exc.details["expression"] == "2q"

    def test_data_version_error_range(self) -> None:
        """Test DataVersionError records the version and the supported range."""
        exc = DataVersionError("Too old", version=1, minimum=2, maximum=5)
        assert isinstance(exc, DataIntegrityError)
        assert exc.details == {"version": 1, "minimum": 2, "maximum": 5}

    def test_expression_error_is_engine_error(self) -> None:
        """Test ExpressionError records the expression."""
        exc = ExpressionError("Division by zero", expression="1/0")
        assert isinstance(exc, EngineError)
        assert exc.details["expression"] == "1/0"


class TestExceptionHierarchy:
    """Tests for exception inheritance."""

    @pytest.mark.parametrize(
        "exc_class",
        [
            ConfigurationError,
            ValidationError,
            DiceError,
            DataIntegrityError,
            DataVersionError,
            EngineError,
            ExpressionError,
        ],
    )
    def test_all_inherit_from_base(self, exc_class: type[GurpsEngineError]) -> None:
        """Test that every engine exception derives from GurpsEngineError."""
        assert issubclass(exc_class, GurpsEngineError)
