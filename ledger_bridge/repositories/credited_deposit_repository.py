"""
Credited deposit repository.

Data access layer for CreditedDeposit model.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from ledger_bridge.models.credited_deposit import CreditedDeposit
from ledger_bridge.repositories.base import BaseRepository


class CreditedDepositRepository(BaseRepository[CreditedDeposit]):
    """Repository for CreditedDeposit model."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize credited deposit repository."""
        super().__init__(CreditedDeposit, session)

    async def is_credited(self, event_id: str) -> bool:
        """
        Check whether an event has already been credited.

        Args:
            event_id: Stream paging token

        Returns:
            True if a record exists
        """
        return await self.get_by_id(event_id) is not None

