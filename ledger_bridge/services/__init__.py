"""
Services.

Business logic layer.
"""

from ledger_bridge.services.customer_directory import (
    CustomerDirectory,
    DatabaseCustomerDirectory,
)
from ledger_bridge.services.deposit import (
    DepositIngestor,
    DepositOutcome,
    LoggingReturnPolicy,
    NonNativePaymentHandler,
)
from ledger_bridge.services.reconciliation import ReconciliationService
from ledger_bridge.services.withdrawal import (
    CycleReport,
    SettlementEngine,
    WithdrawalQueryService,
    WithdrawalRequestHandler,
)


__all__ = [
    "CustomerDirectory",
    "CycleReport",
    "DatabaseCustomerDirectory",
    "DepositIngestor",
    "DepositOutcome",
    "LoggingReturnPolicy",
    "NonNativePaymentHandler",
    "ReconciliationService",
    "SettlementEngine",
    "WithdrawalQueryService",
    "WithdrawalRequestHandler",
]
