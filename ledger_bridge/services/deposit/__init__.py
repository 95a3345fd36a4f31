"""
Deposit services package.
"""

from ledger_bridge.services.deposit.ingestor import DepositIngestor, DepositOutcome
from ledger_bridge.services.deposit.return_policy import (
    LoggingReturnPolicy,
    NonNativePaymentHandler,
)


__all__ = [
    "DepositIngestor",
    "DepositOutcome",
    "LoggingReturnPolicy",
    "NonNativePaymentHandler",
]
