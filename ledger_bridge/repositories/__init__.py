"""Data access repositories."""

from ledger_bridge.repositories.base import BaseRepository
from ledger_bridge.repositories.credited_deposit_repository import (
    CreditedDepositRepository,
)
from ledger_bridge.repositories.customer_account_repository import (
    CustomerAccountRepository,
)
from ledger_bridge.repositories.deposit_cursor_repository import (
    DepositCursorRepository,
)
from ledger_bridge.repositories.unresolved_deposit_repository import (
    UnresolvedDepositRepository,
)
from ledger_bridge.repositories.withdrawal_request_repository import (
    WithdrawalRequestRepository,
)

__all__ = [
    "BaseRepository",
    "CreditedDepositRepository",
    "CustomerAccountRepository",
    "DepositCursorRepository",
    "UnresolvedDepositRepository",
    "WithdrawalRequestRepository",
]
