"""
Unit Tests for Core Exceptions

Tests the exception hierarchy, serialization and wrapping helpers.
"""

import pytest

from invoice_cache.core.exceptions import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    CacheSerializationError,
    ConfigurationError,
    InvalidInputError,
    InvalidTTLError,
    InvoiceCacheError,
    ValidationError,
)


@pytest.mark.unit
class TestInvoiceCacheError:
    """Test the base exception class."""

    def test_base_error_creation(self):
        """Test that InvoiceCacheError can be created."""
        error = InvoiceCacheError("Test message")
        assert str(error) == "Test message"

    def test_base_error_default_values(self):
        """Test default values for InvoiceCacheError."""
        error = InvoiceCacheError("Test")
        assert error.details == {}
        assert error.request_id is None

    def test_exception_details_are_isolated(self):
        """Test that exception details are isolated from the input dict."""
        details = {"key": "dashboard:u1"}
        error = InvoiceCacheError("Test", details=details)

        details["new_key"] = "new_value"

        assert error.details == {"key": "dashboard:u1"}

    def test_to_dict(self):
        error = CacheKeyError("Redis GET failed", request_id="req-1", details={"key": "k"})

        assert error.to_dict() == {
            "error_type": "CacheKeyError",
            "message": "Redis GET failed",
            "request_id": "req-1",
            "details": {"key": "k"},
        }

    def test_with_context_is_chainable(self):
        error = CacheError("boom").with_context(key="settings:u1", command="SET")

        assert error.details == {"key": "settings:u1", "command": "SET"}

    def test_from_exception_wraps_original(self):
        original = TypeError("Type is not JSON serializable: object")

        error = CacheSerializationError.from_exception(original, key="dashboard:u1")

        assert isinstance(error, CacheSerializationError)
        assert error.message == "Type is not JSON serializable: object"
        assert error.details["original_error"] == "TypeError"
        assert error.details["key"] == "dashboard:u1"

    def test_repr_includes_details(self):
        error = InvalidTTLError("bad ttl", details={"ttl": 5})

        assert repr(error) == "InvalidTTLError(message='bad ttl', details={'ttl': 5})"


@pytest.mark.unit
class TestExceptionHierarchy:
    """Test the exception class hierarchy."""

    @pytest.mark.parametrize(
        "exc_type",
        [CacheConnectionError, CacheKeyError, CacheSerializationError, InvalidTTLError],
    )
    def test_cache_errors_share_base(self, exc_type):
        error = exc_type("test")

        assert isinstance(error, CacheError)
        assert isinstance(error, InvoiceCacheError)

    def test_validation_errors(self):
        error = InvalidInputError("userId is required")

        assert isinstance(error, ValidationError)
        assert isinstance(error, InvoiceCacheError)
        assert not isinstance(error, CacheError)

    def test_configuration_error(self):
        assert isinstance(ConfigurationError("missing"), InvoiceCacheError)
