"""
Exception handling utilities.

Defines categorized exception types for proper error handling.
"""

from decimal import Decimal


class LedgerBridgeError(Exception):
    """Base class for all Ledger Bridge errors."""

    pass


# =============================================================================
# PUBLIC LEDGER
# =============================================================================


class TransientLedgerError(LedgerBridgeError):
    """Network or stream failure; safe to retry from durable state."""

    pass


class LedgerStreamError(TransientLedgerError):
    """Raised when the event stream or a lookup request fails."""

    pass


class LedgerTimeoutError(TransientLedgerError):
    """
    Raised when the ledger did not answer in time.

    On submission the outcome is unknown: the transaction may or may not
    have been applied.
    """

    pass


class AccountNotFoundError(LedgerBridgeError):
    """Raised when an account does not exist on the public ledger."""

    def __init__(self, address: str) -> None:
        super().__init__(f"Account not found: {address}")
        self.address = address


class SubmissionRejectedError(LedgerBridgeError):
    """Raised when the ledger definitively rejected a transaction."""

    def __init__(
        self,
        message: str,
        result_codes: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.result_codes = result_codes or {}


class MalformedEventError(LedgerBridgeError):
    """Raised when a stream record cannot be turned into a deposit."""

    pass


# =============================================================================
# DEPOSITS
# =============================================================================


class DepositNotFoundError(LedgerBridgeError):
    """Raised when an operator action targets an unknown queued deposit."""

    pass


# =============================================================================
# WITHDRAWALS
# =============================================================================


class InvalidWithdrawalError(LedgerBridgeError):
    """Raised when a withdrawal request fails validation."""

    pass


class InsufficientBalanceError(InvalidWithdrawalError):
    """Raised when a withdrawal exceeds the customer's balance."""

    def __init__(
        self,
        customer_id: int,
        requested: Decimal,
        available: Decimal,
    ) -> None:
        super().__init__(
            f"Customer {customer_id}: requested {requested}, "
            f"available {available}"
        )
        self.customer_id = customer_id
        self.requested = requested
        self.available = available


class CustomerNotFoundError(InvalidWithdrawalError):
    """Raised when the withdrawing customer does not exist."""

    pass


class InvalidStateTransitionError(LedgerBridgeError):
    """Raised on an illegal withdrawal state transition."""

    def __init__(self, old: str, new: str) -> None:
        super().__init__(f"Illegal withdrawal transition: {old} -> {new}")
        self.old = old
        self.new = new


class WithdrawalNotFoundError(LedgerBridgeError):
    """Raised when an operator action targets an unknown withdrawal."""

    pass


# Exception categories based on handling strategy

# Retry from the last committed state
RETRYABLE = (
    TransientLedgerError,
)

# Outcome unknown - must never be retried automatically
AMBIGUOUS = (
    LedgerTimeoutError,
)


def is_transient(exc: Exception) -> bool:
    """
    Check if exception can be retried from durable state.

    Args:
        exc: Exception to check

    Returns:
        True if exception is transient
    """
    return isinstance(exc, RETRYABLE)


def is_ambiguous(exc: Exception) -> bool:
    """
    Check if a submission failure leaves the ledger outcome unknown.

    Args:
        exc: Exception to check

    Returns:
        True if the transaction may have been applied
    """
    return isinstance(exc, AMBIGUOUS)
