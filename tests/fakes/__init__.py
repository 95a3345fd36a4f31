"""In-memory stand-ins for the public ledger and the signing adapter."""

from tests.fakes.db import create_customer, get_balance
from tests.fakes.ledger import BASE_ACCOUNT, FakeLedgerClient, FakeSigner, make_event

__all__ = [
    "BASE_ACCOUNT",
    "FakeLedgerClient",
    "FakeSigner",
    "create_customer",
    "get_balance",
    "make_event",
]
