"""
Withdrawal services package.

- request_handler: Withdrawal intake (debit + pending request, atomically)
- settlement_engine: Sequential settlement on the public ledger
- state_machine: Allowed state transitions
- query_service: Customer-facing status
"""

from ledger_bridge.services.withdrawal.query_service import (
    WithdrawalQueryService,
    customer_status_label,
)
from ledger_bridge.services.withdrawal.request_handler import (
    WithdrawalRequestHandler,
)
from ledger_bridge.services.withdrawal.settlement_engine import (
    CycleReport,
    SettlementEngine,
)
from ledger_bridge.services.withdrawal.state_machine import (
    assert_transition,
    can_transition,
)


__all__ = [
    "CycleReport",
    "SettlementEngine",
    "WithdrawalQueryService",
    "WithdrawalRequestHandler",
    "assert_transition",
    "can_transition",
    "customer_status_label",
]
