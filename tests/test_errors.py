"""Tests for GeoLink errors and dependency checks."""

import pytest

from geolink.utils import (
    DataValidationError,
    DependencyError,
    EmptyReductionError,
    GeoLinkError,
    KeyNotFoundError,
    ParameterError,
    raise_key_not_found,
    raise_parameter_error,
    require,
)


class TestErrors:
    """Tests for error formatting and hierarchy."""

    def test_suggestion_in_message(self):
        """Test that suggestions are appended to the message."""
        error = DataValidationError("Bad input", suggestion="Fix it")
        assert str(error) == "Bad input\n\nSuggestion: Fix it"
        assert error.details == {}

    def test_hierarchy(self):
        """Test that GeoLink errors can be caught by their builtin bases."""
        assert issubclass(KeyNotFoundError, KeyError)
        assert issubclass(EmptyReductionError, ValueError)
        assert issubclass(ParameterError, GeoLinkError)

    def test_raise_parameter_error(self):
        """Test parameter error message."""
        with pytest.raises(ParameterError) as exc_info:
            raise_parameter_error("mode", "x", valid_values=["center", "overlap"])
        message = str(exc_info.value)
        assert "Invalid value for parameter 'mode': 'x'" in message
        assert "Valid values: center, overlap" in message

    def test_raise_key_not_found(self):
        """Test that missing keys list the available columns."""
        with pytest.raises(KeyNotFoundError, match=r"Available columns: \['a', 'b'\]"):
            raise_key_not_found("c", ["a", "b"])


class TestRequire:
    """Tests for optional dependency checks."""

    def test_available(self):
        """Test that an available dependency passes."""
        require("geopandas", True, "io")

    def test_missing(self):
        """Test that a missing dependency names its extra."""
        with pytest.raises(DependencyError, match=r"pip install geolink\[viz\]"):
            require("matplotlib", False, "viz")
