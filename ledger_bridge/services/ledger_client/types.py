"""
Value types exchanged with the public ledger.
"""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class PaymentEvent:
    """
    Incoming payment seen on the receiving account's payment stream.

    ``paging_token`` is the stream position and the event's unique ID.
    ``amount`` is kept as the wire string; the ingestor parses it.
    """

    paging_token: str
    to: str | None
    asset_type: str | None
    amount: str | None
    memo: str | None = None
    transaction_hash: str | None = None
    from_address: str | None = None
    record_type: str = "payment"


@dataclass(frozen=True)
class AccountHandle:
    """Account loaded from the ledger with its current sequence number."""

    address: str
    sequence: int

    def next_sequence(self) -> int:
        """Sequence number the next transaction from this account must use."""
        return self.sequence + 1


@dataclass(frozen=True)
class PaymentOperation:
    """Plain payment of the native asset to an existing account."""

    destination: str
    amount: Decimal


@dataclass(frozen=True)
class CreateAccountOperation:
    """Create a new account funded with a starting balance."""

    destination: str
    starting_balance: Decimal


Operation = PaymentOperation | CreateAccountOperation


@dataclass(frozen=True)
class SignedTransaction:
    """Signed transaction envelope ready for submission."""

    envelope: str
    hash: str
    source: str = ""
    sequence: int = 0


@dataclass(frozen=True)
class SubmissionResult:
    """Successful submission reported by the ledger."""

    hash: str
    ledger: int | None = None
