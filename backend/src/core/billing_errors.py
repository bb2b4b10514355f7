"""
Error kinds raised by the billing ledger.

Every ledger failure carries a message fit for display to the cashier. None of
these are retried inside the ledger; ConflictError is the only one a caller
should retry.
"""


class BillingError(Exception):
    """Base class for billing ledger errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BillingError, ValueError):
    """Malformed or missing input. No state was created or changed."""
    pass


class NotFoundError(BillingError):
    """Referenced invoice, patient or service item does not exist."""
    pass


class InvalidStateError(NotFoundError):
    """Invoice exists but is not eligible for the operation (e.g. already paid)."""
    pass


class ConflictError(BillingError):
    """Concurrent update detected; the caller should retry."""
    pass


class StorageError(BillingError):
    """Transaction failed for infrastructure reasons and was rolled back."""
    pass


class PermissionDeniedError(BillingError):
    """Actor lacks the capability required for the operation."""
    pass
