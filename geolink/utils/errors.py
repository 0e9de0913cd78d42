"""Standardized errors for GeoLink.

Every failure is reported to the caller as one of these exceptions. Nothing
in the library substitutes a default value for a failed check.
"""

from typing import Any, Optional


class GeoLinkError(Exception):
    """Base exception for GeoLink errors."""

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        """Initialize GeoLink error.

        Args:
            message: Primary error message.
            suggestion: Optional suggestion for fixing the error.
            details: Optional dictionary with additional error details.
        """
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        """Format error message with suggestion if available."""
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class DataValidationError(GeoLinkError):
    """Error raised when data validation fails."""

    pass


class ParameterError(GeoLinkError):
    """Error raised when parameters are invalid."""

    pass


class DependencyError(GeoLinkError):
    """Error raised when required dependencies are missing."""

    pass


class FrameMismatchError(DataValidationError):
    """Two spatial inputs were compared under different reference frames."""

    pass


class DuplicateKeyError(DataValidationError):
    """An attribute join key is not unique where uniqueness is required."""

    pass


class KeyNotFoundError(GeoLinkError, KeyError):
    """A join key or attribute column is absent."""

    pass


class EmptyReductionError(GeoLinkError, ValueError):
    """A reduction is undefined on an empty set of values."""

    pass


def format_parameter_error(
    parameter_name: str,
    value: Any,
    valid_values: Optional[list[str]] = None,
    constraint: Optional[str] = None,
) -> str:
    """Format a standardized parameter error message.

    Args:
        parameter_name: Name of the invalid parameter.
        value: Invalid value that was provided.
        valid_values: List of valid values (optional).
        constraint: Constraint that was violated (optional).

    Returns:
        Formatted error message string.
    """
    parts = [f"Invalid value for parameter '{parameter_name}': {value!r}"]
    if valid_values:
        parts.append(f"Valid values: {', '.join(map(str, valid_values))}")
    if constraint:
        parts.append(f"Constraint: {constraint}")
    return "\n".join(parts)


def format_dependency_error(
    dependency_name: str,
    optional_group: Optional[str] = None,
) -> str:
    """Format a standardized dependency error message.

    Args:
        dependency_name: Name of the missing dependency.
        optional_group: Optional dependency group name (optional).

    Returns:
        Formatted error message string.
    """
    parts = [f"Missing required dependency: {dependency_name}"]
    if optional_group:
        parts.append(f"Install with: pip install geolink[{optional_group}]")
    else:
        parts.append(f"Install with: pip install {dependency_name}")
    return "\n".join(parts)


def raise_parameter_error(
    parameter_name: str,
    value: Any,
    valid_values: Optional[list[str]] = None,
    constraint: Optional[str] = None,
    suggestion: Optional[str] = None,
) -> None:
    """Raise a standardized parameter error.

    Raises:
        ParameterError: Always raises this exception.
    """
    error_msg = format_parameter_error(parameter_name, value, valid_values, constraint)
    raise ParameterError(error_msg, suggestion=suggestion)


def raise_key_not_found(
    key: str,
    available: list[str],
    where: str = "attribute table",
) -> None:
    """Raise a KeyNotFoundError listing the columns that do exist.

    Raises:
        KeyNotFoundError: Always raises this exception.
    """
    raise KeyNotFoundError(
        f"Column '{key}' not found in {where}. Available columns: {available}",
        details={"key": key, "available": available},
    )
