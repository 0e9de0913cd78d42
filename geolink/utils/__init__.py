"""Utility modules for GeoLink."""

from geolink.utils.errors import (
    DataValidationError,
    DependencyError,
    DuplicateKeyError,
    EmptyReductionError,
    FrameMismatchError,
    GeoLinkError,
    KeyNotFoundError,
    ParameterError,
    format_dependency_error,
    format_parameter_error,
    raise_key_not_found,
    raise_parameter_error,
)
from geolink.utils.optional_imports import require

__all__ = [
    "require",
    "GeoLinkError",
    "DataValidationError",
    "ParameterError",
    "DependencyError",
    "FrameMismatchError",
    "DuplicateKeyError",
    "KeyNotFoundError",
    "EmptyReductionError",
    "format_parameter_error",
    "format_dependency_error",
    "raise_parameter_error",
    "raise_key_not_found",
]
