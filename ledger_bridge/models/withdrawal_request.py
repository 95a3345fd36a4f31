"""
Withdrawal request model.

Represents a customer withdrawal and its settlement state on the
public ledger.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from ledger_bridge.config.constants import WITHDRAWAL_MEMO_PREFIX
from ledger_bridge.models.base import Base
from ledger_bridge.models.enums import WithdrawalState
from ledger_bridge.models.types import MoneyType


class WithdrawalRequest(Base):
    """Withdrawal request - settled by the settlement engine."""

    __tablename__ = "withdrawal_requests"
    __table_args__ = (
        CheckConstraint(
            "amount > 0", name="check_withdrawal_amount_positive"
        ),
        CheckConstraint(
            "state IN ('pending', 'sending', 'done', 'error')",
            name="check_withdrawal_state",
        ),
        Index("idx_withdrawal_state_id", "state", "id"),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    customer_id: Mapped[int] = mapped_column(
        ForeignKey("customer_accounts.id"),
        nullable=False,
        index=True,
    )
    destination_address: Mapped[str] = mapped_column(
        String(64), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    state: Mapped[str] = mapped_column(
        String(16), nullable=False, default=WithdrawalState.PENDING.value
    )

    # Settlement outcome
    tx_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    # True when the outcome on the ledger is unknown (timeout, crash)
    ambiguous: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    used_create_account: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    attempted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    @property
    def memo(self) -> str:
        """Memo attached to the settlement transaction."""
        return f"{WITHDRAWAL_MEMO_PREFIX}{self.id}"

    def __repr__(self) -> str:
        return (
            f"<WithdrawalRequest(id={self.id}, customer_id={self.customer_id}, "
            f"amount={self.amount}, state={self.state})>"
        )
