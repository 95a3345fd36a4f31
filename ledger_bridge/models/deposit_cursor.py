"""
Deposit Cursor model.

Tracks the position of the deposit event stream.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger_bridge.models.base import Base


class DepositCursor(Base):
    """
    Last processed position in the deposit event stream.

    Used to:
    - Resume the stream after restart
    - Record stream errors for operators

    One row per stream name. The token only moves forward, together with
    the deposit it was advanced for, except through an operator reset.
    """

    __tablename__ = "deposit_cursors"

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    stream_name: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, index=True
    )

    # Opaque paging token; NULL means "start from stream origin"
    token: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Error tracking
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
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
