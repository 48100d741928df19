"""Custom exception hierarchy for the GURPS character engine.

All exceptions inherit from GurpsEngineError so callers can handle every
engine failure at one boundary while keeping domain-specific context in
``details``.

Only unrecoverable conditions are raised. Recoverable problems met during
recalculation (an unresolvable variable, an unknown feature variant) are
logged and degrade to an "unknown" value instead.

Example:
    >>> from gurps_engine.core.exceptions import DataVersionError
    >>> raise DataVersionError("Data too new", version=9, maximum=5)
"""

from __future__ import annotations

from typing import Any


class GurpsEngineError(Exception):
    """Base exception for all GURPS engine errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Configuration and Validation
# =============================================================================


class ConfigurationError(GurpsEngineError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with the offending key.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class ValidationError(GurpsEngineError):
    """Raised when element data fails validation.

    This covers malformed identifiers, unparseable modifier adjustments
    and similar problems with user-authored data.
    """

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


class DiceError(ValidationError):
    """Raised when dice notation cannot be parsed or rolled."""

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize dice error with the offending expression.

        Args:
            message: Human-readable error description.
            expression: The dice expression that failed.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression is not None:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


# =============================================================================
# Data Integrity
# =============================================================================


class DataIntegrityError(GurpsEngineError):
    """Raised for unrecoverable data states.

    Example: a sheet whose attribute definition table lacks a definition the
    engine cannot operate without.
    """

    def __init__(
        self,
        message: str,
        *,
        element_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize data integrity error with the element involved.

        Args:
            message: Human-readable error description.
            element_id: Identifier of the element with bad data.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if element_id:
            combined_details["element_id"] = element_id
        super().__init__(message, details=combined_details)


class DataVersionError(DataIntegrityError):
    """Raised when persisted data carries an unsupported version."""

    def __init__(
        self,
        message: str,
        *,
        version: int | None = None,
        minimum: int | None = None,
        maximum: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize version error with the supported range.

        Args:
            message: Human-readable error description.
            version: The version found in the data.
            minimum: Oldest supported version.
            maximum: Newest supported version.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if version is not None:
            combined_details["version"] = version
        if minimum is not None:
            combined_details["minimum"] = minimum
        if maximum is not None:
            combined_details["maximum"] = maximum
        super().__init__(message, details=combined_details)


# =============================================================================
# Engine
# =============================================================================


class EngineError(GurpsEngineError):
    """Base exception for calculation engine failures."""


class ExpressionError(EngineError):
    """Raised inside the expression evaluator for malformed expressions.

    Callers of the text resolver never see it: resolution logs the failure
    and yields an empty string or zero.
    """

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if expression is not None:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


__all__ = [
    "GurpsEngineError",
    "ConfigurationError",
    "ValidationError",
    "DiceError",
    "DataIntegrityError",
    "DataVersionError",
    "EngineError",
    "ExpressionError",
]
