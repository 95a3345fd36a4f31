"""
Model enumerations.
"""

from enum import Enum


class WithdrawalState(str, Enum):
    """Settlement state of a withdrawal request."""

    PENDING = "pending"
    SENDING = "sending"
    DONE = "done"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        """Terminal states are never touched by the settlement engine."""
        return self in (WithdrawalState.DONE, WithdrawalState.ERROR)


class UnresolvedReason(str, Enum):
    """Why a deposit event landed in the operator review queue."""

    UNRESOLVED_MEMO = "unresolved_memo"
    NON_NATIVE_ASSET = "non_native_asset"
    MALFORMED = "malformed"
