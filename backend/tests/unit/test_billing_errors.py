"""
Unit tests for billing error kinds.
"""

from core.billing_errors import (
    BillingError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    StorageError,
    ValidationError,
)


class TestBillingErrors:
    """Test error hierarchy and messages."""

    def test_message_attribute(self):
        error = ConflictError("please retry")
        assert error.message == "please retry"
        assert str(error) == "please retry"

    def test_validation_error_is_value_error(self):
        assert issubclass(ValidationError, ValueError)
        assert issubclass(ValidationError, BillingError)

    def test_invalid_state_is_not_found(self):
        assert issubclass(InvalidStateError, NotFoundError)

    def test_storage_error_is_billing_error(self):
        assert issubclass(StorageError, BillingError)
        assert not issubclass(StorageError, ValueError)
