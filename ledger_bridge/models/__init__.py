"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from ledger_bridge.models.base import Base
from ledger_bridge.models.credited_deposit import CreditedDeposit
from ledger_bridge.models.customer_account import CustomerAccount
from ledger_bridge.models.deposit_cursor import DepositCursor
from ledger_bridge.models.enums import UnresolvedReason, WithdrawalState
from ledger_bridge.models.unresolved_deposit import UnresolvedDeposit
from ledger_bridge.models.withdrawal_request import WithdrawalRequest

__all__ = [
    # Base
    "Base",
    # Enums
    "UnresolvedReason",
    "WithdrawalState",
    # Models
    "CreditedDeposit",
    "CustomerAccount",
    "DepositCursor",
    "UnresolvedDeposit",
    "WithdrawalRequest",
]
