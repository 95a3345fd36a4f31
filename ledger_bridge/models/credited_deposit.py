"""
Credited deposit model.

One row per deposit event that has been credited to a customer.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_bridge.models.base import Base
from ledger_bridge.models.types import MoneyType


class CreditedDeposit(Base):
    """
    Credited deposit - write-once record.

    The event ID (stream paging token) is the primary key, so crediting
    the same stream position twice is rejected by the database.
    """

    __tablename__ = "credited_deposits"
    __table_args__ = (
        CheckConstraint(
            "amount > 0", name="check_credited_deposit_amount_positive"
        ),
    )

    event_id: Mapped[str] = mapped_column(String(64), primary_key=True)

    customer_id: Mapped[int] = mapped_column(
        ForeignKey("customer_accounts.id"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    transaction_hash: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )

    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
