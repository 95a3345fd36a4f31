"""
Base repository.

Repositories never commit: every call runs inside a transaction opened
by the service, so a row locked here stays locked until that service's
unit of work ends.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import Select, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_bridge.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Lookups and inserts shared by all tables.

    Primary keys are not assumed to be integers: CreditedDeposit is keyed
    by the stream paging token.
    """

    def __init__(self, model: type[ModelType], session: AsyncSession) -> None:
        self.model = model
        self.session = session

    def _select(self, for_update: bool = False) -> Select:
        stmt = select(self.model)
        if for_update:
            stmt = stmt.with_for_update()
        return stmt

    async def get_by_id(self, key: Any, for_update: bool = False) -> ModelType | None:
        """
        Get row by primary key.

        Args:
            key: Primary key value (int or str, depending on the table)
            for_update: Lock the row until the transaction ends

        Returns:
            Row or None
        """
        primary_key = inspect(self.model).primary_key[0]
        stmt = self._select(for_update).where(primary_key == key)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by(self, for_update: bool = False, **filters: Any) -> ModelType | None:
        """Get the single row matching unique column filters."""
        stmt = self._select(for_update).filter_by(**filters)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, **data: Any) -> ModelType:
        """
        Insert a row and flush it.

        The flush surfaces unique-key violations (IntegrityError) inside
        the caller's transaction; the refresh loads server defaults.
        """
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity
