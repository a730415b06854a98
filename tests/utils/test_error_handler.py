"""Unit tests for ErrorHandler and the service error types."""

import pytest

from towerinsight.utils.error_handler import (
    ConfigurationError,
    ErrorHandler,
    LLMError,
    ServiceError,
    StorageError,
)


def _monthly_share(total, months):
    return total / months


class TestSafeExecute:
    """Test tuple-returning execution."""

    def test_success(self):
        """Results come back with no error."""
        assert ErrorHandler.safe_execute(_monthly_share, 1200, months=12) == (100, None)

    def test_unexpected_error_returns_prefixed_message(self):
        """Exceptions from our own code become (None, message)."""
        result, error = ErrorHandler.safe_execute(
            _monthly_share, 1200, 0, error_message_prefix="Revenue split failed"
        )

        assert result is None
        assert error.startswith("Revenue split failed: ")
        assert "division by zero" in error

    def test_service_error_returns_message(self):
        """Dependency failures are reported the same way."""

        def invoke():
            raise LLMError("Bedrock throttled")

        assert ErrorHandler.safe_execute(invoke, error_message_prefix="Ask failed") == (
            None,
            "Ask failed: Bedrock throttled",
        )

    def test_default_on_error(self):
        """safe_execute_with_default substitutes the default series."""
        result, error = ErrorHandler.safe_execute_with_default(
            _monthly_share, [], 1200, 0
        )

        assert result == []
        assert error is not None

    def test_default_unused_on_success(self):
        """The default is ignored when the call succeeds."""
        assert ErrorHandler.safe_execute_with_default(_monthly_share, [], 10, 5) == (
            2,
            None,
        )

    def test_storage_operation_names_the_operation(self):
        """Storage failures mention the operation."""

        def load():
            raise StorageError("bucket missing")

        result, error = ErrorHandler.safe_storage_operation(
            load, operation_name="Response cache load"
        )

        assert result is None
        assert error == "Response cache load failed: bucket missing"


class TestServiceErrors:
    """Test the exception hierarchy."""

    @pytest.mark.parametrize("error_cls", [StorageError, LLMError, ConfigurationError])
    def test_subclasses_service_error(self, error_cls):
        """Every service error can be caught as ServiceError."""
        with pytest.raises(ServiceError):
            raise error_cls("failed")
