"""
Customer account model.

Internal balance of an exchange customer, addressed on the public ledger
through a correlation identifier placed in the deposit memo.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_bridge.models.base import Base
from ledger_bridge.models.types import MoneyType


class CustomerAccount(Base):
    """Customer account - internal balance."""

    __tablename__ = "customer_accounts"
    __table_args__ = (
        CheckConstraint(
            "balance >= 0", name="check_customer_balance_non_negative"
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Value expected in the memo of incoming deposits
    correlation_id: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, index=True
    )

    balance: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
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

    def __repr__(self) -> str:
        return (
            f"<CustomerAccount(id={self.id}, "
            f"correlation_id={self.correlation_id!r}, balance={self.balance})>"
        )
