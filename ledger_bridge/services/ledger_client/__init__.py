"""
Public ledger client package.

- base: LedgerClient / TransactionSigner protocols
- types: value types exchanged with the ledger
- horizon: aiohttp adapter over a Horizon-style REST API
- signer: loading of the external signing adapter
"""

from ledger_bridge.services.ledger_client.base import LedgerClient, TransactionSigner
from ledger_bridge.services.ledger_client.horizon import (
    HorizonClient,
    payment_record_to_event,
)
from ledger_bridge.services.ledger_client.signer import load_signer
from ledger_bridge.services.ledger_client.types import (
    AccountHandle,
    CreateAccountOperation,
    Operation,
    PaymentEvent,
    PaymentOperation,
    SignedTransaction,
    SubmissionResult,
)

__all__ = [
    "AccountHandle",
    "CreateAccountOperation",
    "HorizonClient",
    "LedgerClient",
    "Operation",
    "PaymentEvent",
    "PaymentOperation",
    "SignedTransaction",
    "SubmissionResult",
    "TransactionSigner",
    "load_signer",
    "payment_record_to_event",
]
