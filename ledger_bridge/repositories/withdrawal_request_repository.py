"""
Withdrawal request repository.

Data access layer for WithdrawalRequest model.
"""

from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_bridge.models.enums import WithdrawalState
from ledger_bridge.models.withdrawal_request import WithdrawalRequest
from ledger_bridge.repositories.base import BaseRepository


class WithdrawalRequestRepository(BaseRepository[WithdrawalRequest]):
    """Repository for WithdrawalRequest model."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize withdrawal request repository."""
        super().__init__(WithdrawalRequest, session)

    async def get_for_update(self, request_id: int) -> WithdrawalRequest | None:
        """
        Get withdrawal request with a row lock.

        Args:
            request_id: Request ID

        Returns:
            Locked WithdrawalRequest or None
        """
        return await self.get_by_id(request_id, for_update=True)

    async def next_pending_id(self, after_id: int = 0) -> int | None:
        """
        Get ID of the oldest pending request.

        Args:
            after_id: Only consider requests with a greater ID

        Returns:
            Request ID or None when nothing is pending
        """
        stmt = (
            select(WithdrawalRequest.id)
            .where(
                WithdrawalRequest.state == WithdrawalState.PENDING.value,
                WithdrawalRequest.id > after_id,
            )
            .order_by(WithdrawalRequest.id.asc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_states(
        self, states: list[WithdrawalState], limit: int = 100
    ) -> list[WithdrawalRequest]:
        """
        List requests in any of the given states, oldest first.

        Args:
            states: States to include
            limit: Max number of results

        Returns:
            List of WithdrawalRequest
        """
        stmt = (
            select(WithdrawalRequest)
            .where(WithdrawalRequest.state.in_([s.value for s in states]))
            .order_by(WithdrawalRequest.id.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_stuck_sending(
        self, older_than_minutes: int
    ) -> list[WithdrawalRequest]:
        """
        Find requests left in "sending" longer than threshold.

        Args:
            older_than_minutes: Minimum age in minutes to consider stuck

        Returns:
            List of stuck WithdrawalRequest
        """
        threshold = datetime.now(UTC) - timedelta(minutes=older_than_minutes)

        stmt = (
            select(WithdrawalRequest)
            .where(
                WithdrawalRequest.state == WithdrawalState.SENDING.value,
                WithdrawalRequest.updated_at < threshold,
            )
            .order_by(WithdrawalRequest.updated_at.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
