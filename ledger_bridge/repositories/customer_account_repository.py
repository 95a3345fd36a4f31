"""
Customer account repository.

Data access layer for CustomerAccount model.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from ledger_bridge.models.customer_account import CustomerAccount
from ledger_bridge.repositories.base import BaseRepository


class CustomerAccountRepository(BaseRepository[CustomerAccount]):
    """Repository for CustomerAccount model."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize customer account repository."""
        super().__init__(CustomerAccount, session)

    async def get_by_correlation_id(
        self, correlation_id: str
    ) -> CustomerAccount | None:
        """
        Get customer by deposit correlation identifier.

        Args:
            correlation_id: Value carried in the deposit memo

        Returns:
            CustomerAccount or None
        """
        return await self.get_by(correlation_id=correlation_id)

    async def get_for_update(self, customer_id: int) -> CustomerAccount | None:
        """
        Get customer with a row lock.

        Args:
            customer_id: Customer ID

        Returns:
            Locked CustomerAccount or None
        """
        return await self.get_by_id(customer_id, for_update=True)

    async def credit(self, customer_id: int, amount: Decimal) -> CustomerAccount | None:
        """
        Increase customer balance.

        Args:
            customer_id: Customer ID
            amount: Amount to add

        Returns:
            Updated CustomerAccount or None if not found
        """
        customer = await self.get_for_update(customer_id)
        if not customer:
            return None

        customer.balance = customer.balance + amount
        await self.session.flush()
        return customer
