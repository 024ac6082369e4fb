"""
Domain-specific exceptions for the purchases ledger.

Engine validation failures are never raised; they are returned as
structured ``validation_errors``. The exceptions below cover caller-contract
errors (malformed input) and service-level business rule violations, and
should be caught in views and converted to HTTP responses.
"""


class LedgerServiceError(Exception):
    """Base exception for all purchase ledger errors."""
    pass


class InvalidPurchaseError(LedgerServiceError):
    """Raised when purchase data is malformed (negative totals, bad quantities)."""
    pass


class InvalidSplitError(LedgerServiceError):
    """Raised when a split configuration is malformed or unsupported."""
    pass


class PurchaseNotFoundError(LedgerServiceError):
    """Raised when a purchase does not exist."""
    pass


class SettlementNotFoundError(LedgerServiceError):
    """Raised when a settlement does not exist."""
    pass


class SettlementAlreadyCompletedError(LedgerServiceError):
    """Raised when completing a settlement that is already completed."""
    pass


class NotGroupMemberError(LedgerServiceError):
    """Raised when a user acts on a group they do not belong to."""
    pass


class InsufficientPermissionsError(LedgerServiceError):
    """Raised when a user lacks permission for a ledger operation."""
    pass
