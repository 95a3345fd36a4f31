"""
Unresolved deposit repository.

Data access layer for the operator review queue.
"""

from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_bridge.models.unresolved_deposit import UnresolvedDeposit
from ledger_bridge.repositories.base import BaseRepository


class UnresolvedDepositRepository(BaseRepository[UnresolvedDeposit]):
    """Repository for UnresolvedDeposit model."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize unresolved deposit repository."""
        super().__init__(UnresolvedDeposit, session)

    async def get_by_event_id(
        self, event_id: str, for_update: bool = False
    ) -> UnresolvedDeposit | None:
        """
        Get queue entry by event ID.

        Args:
            event_id: Stream paging token
            for_update: Lock the row

        Returns:
            UnresolvedDeposit or None
        """
        return await self.get_by(for_update=for_update, event_id=event_id)

    async def enqueue(self, event_id: str, reason: str, **details) -> UnresolvedDeposit:
        """
        Add event to the review queue unless it is already there.

        Args:
            event_id: Stream paging token
            reason: UnresolvedReason value
            **details: Event fields to keep for the operator

        Returns:
            New or existing UnresolvedDeposit
        """
        existing = await self.get_by_event_id(event_id)
        if existing:
            return existing
        return await self.create(event_id=event_id, reason=reason, **details)

    async def list_open(self, limit: int = 100) -> list[UnresolvedDeposit]:
        """
        List entries awaiting an operator, oldest first.

        Args:
            limit: Max number of results

        Returns:
            List of UnresolvedDeposit
        """
        stmt = (
            select(UnresolvedDeposit)
            .where(UnresolvedDeposit.resolved_at.is_(None))
            .order_by(UnresolvedDeposit.id.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def mark_resolved(
        self, entry: UnresolvedDeposit, customer_id: int | None = None
    ) -> UnresolvedDeposit:
        """
        Close queue entry.

        Args:
            entry: Queue entry
            customer_id: Customer credited by the operator, if any

        Returns:
            Updated UnresolvedDeposit
        """
        entry.resolved_at = datetime.now(UTC)
        entry.resolved_customer_id = customer_id
        await self.session.flush()
        return entry
