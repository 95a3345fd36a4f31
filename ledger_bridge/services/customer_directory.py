"""
Customer directory.

Maps the correlation identifier carried in a deposit memo to an internal
customer account.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from ledger_bridge.repositories.customer_account_repository import (
    CustomerAccountRepository,
)


class CustomerDirectory(Protocol):
    """Resolves correlation identifiers to customer IDs."""

    async def resolve(
        self, session: AsyncSession, correlation_id: str | None
    ) -> int | None:
        """Return customer ID, or None when the identifier is unknown."""
        ...


class DatabaseCustomerDirectory:
    """Customer directory backed by the customer_accounts table."""

    async def resolve(
        self, session: AsyncSession, correlation_id: str | None
    ) -> int | None:
        """
        Resolve correlation identifier inside the caller's transaction.

        Args:
            session: Database session of the running transaction
            correlation_id: Memo value (surrounding whitespace ignored)

        Returns:
            Customer ID or None
        """
        if correlation_id is None:
            return None

        correlation_id = correlation_id.strip()
        if not correlation_id:
            return None

        customer = await CustomerAccountRepository(session).get_by_correlation_id(
            correlation_id
        )
        return customer.id if customer else None
