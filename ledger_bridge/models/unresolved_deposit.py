"""
Unresolved deposit model.

Operator review queue for deposit events that could not be credited.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger_bridge.models.base import Base
from ledger_bridge.models.types import MoneyType


class UnresolvedDeposit(Base):
    """Deposit event queued for manual remediation."""

    __tablename__ = "unresolved_deposits"

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    event_id: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, index=True
    )
    reason: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    # Event details as received
    memo: Mapped[str | None] = mapped_column(String(64), nullable=True)
    amount: Mapped[Decimal | None] = mapped_column(MoneyType, nullable=True)
    asset_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    from_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    transaction_hash: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    details: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Resolution
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    resolved_customer_id: Mapped[int | None] = mapped_column(
        ForeignKey("customer_accounts.id"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    @property
    def is_resolved(self) -> bool:
        """Check if an operator has closed this entry."""
        return self.resolved_at is not None
