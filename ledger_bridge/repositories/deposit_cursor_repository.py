"""
Deposit cursor repository.

Data access layer for DepositCursor model.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_bridge.models.deposit_cursor import DepositCursor
from ledger_bridge.repositories.base import BaseRepository


class DepositCursorRepository(BaseRepository[DepositCursor]):
    """Repository for DepositCursor model."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize deposit cursor repository."""
        super().__init__(DepositCursor, session)

    async def get_or_create(
        self, stream_name: str, for_update: bool = False
    ) -> DepositCursor:
        """
        Get cursor row for stream, creating an empty one if missing.

        Args:
            stream_name: Stream identifier
            for_update: Lock the row

        Returns:
            DepositCursor
        """
        cursor = await self.get_by(for_update=for_update, stream_name=stream_name)
        if cursor:
            return cursor

        return await self.create(stream_name=stream_name, token=None)

    async def get_token(self, stream_name: str) -> str | None:
        """
        Get last committed token.

        Args:
            stream_name: Stream identifier

        Returns:
            Token or None when the stream has not been consumed yet
        """
        stmt = select(DepositCursor.token).where(
            DepositCursor.stream_name == stream_name
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def advance(self, stream_name: str, token: str) -> DepositCursor:
        """
        Move cursor to token and clear error state.

        Args:
            stream_name: Stream identifier
            token: New stream position

        Returns:
            Updated DepositCursor
        """
        cursor = await self.get_or_create(stream_name, for_update=True)
        cursor.token = token
        cursor.last_error = None
        cursor.error_count = 0
        await self.session.flush()
        return cursor

    async def record_error(self, stream_name: str, error: str) -> DepositCursor:
        """
        Record a stream error without moving the cursor.

        Args:
            stream_name: Stream identifier
            error: Error description

        Returns:
            Updated DepositCursor
        """
        cursor = await self.get_or_create(stream_name, for_update=True)
        cursor.last_error = error[:2000]
        cursor.error_count = cursor.error_count + 1
        await self.session.flush()
        return cursor
