"""
Ledger client interfaces.

The public ledger and the offline signing adapter are external
collaborators; these protocols are the only surface the core depends on.
"""

from collections.abc import AsyncIterator
from typing import Protocol

from ledger_bridge.services.ledger_client.types import (
    AccountHandle,
    Operation,
    PaymentEvent,
    SignedTransaction,
    SubmissionResult,
)


class LedgerClient(Protocol):
    """Network client for the public ledger."""

    def subscribe(
        self, address: str, cursor: str | None = None
    ) -> AsyncIterator[PaymentEvent]:
        """
        Stream payments involving ``address`` in ledger order.

        Starts right after ``cursor`` (from stream origin when None) and
        never ends on its own. Raises LedgerStreamError on transport
        failure; the caller resubscribes from its committed cursor.
        """
        ...

    async def get_transaction_memo(self, transaction_hash: str) -> str | None:
        """Get the correlation memo (text, ID or hash) of a transaction."""
        ...

    async def get_account(self, address: str) -> AccountHandle:
        """Load account; raises AccountNotFoundError when it does not exist."""
        ...

    async def submit(self, transaction: SignedTransaction) -> SubmissionResult:
        """
        Submit a signed transaction and wait for the outcome.

        Raises SubmissionRejectedError when the ledger rejects it and
        LedgerTimeoutError when the outcome is unknown.
        """
        ...


class TransactionSigner(Protocol):
    """Offline signing adapter for the exchange's submitting account."""

    async def sign(
        self,
        source: AccountHandle,
        operation: Operation,
        memo: str | None = None,
    ) -> SignedTransaction:
        """Build and sign a single-operation transaction from ``source``."""
        ...
