"""
Trust history repository.

Data access layer for the append-only trust_history table.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_engine.models.trust_history import TrustHistory
from rewards_engine.repositories.base import BaseRepository


class TrustHistoryRepository(BaseRepository[TrustHistory]):
    """Repository for trust score history."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(TrustHistory, session)

    async def get_by_idempotency_key(self, key: str) -> TrustHistory | None:
        """Get the entry recorded for an idempotency key."""
        return await self.get_by(idempotency_key=key)

    async def get_for_user(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> list[TrustHistory]:
        """
        Get a user's score history, newest first.

        Args:
            user_id: User ID
            limit: Page size
            offset: Rows to skip

        Returns:
            List of history entries
        """
        stmt = (
            select(TrustHistory)
            .where(TrustHistory.user_id == user_id)
            .order_by(TrustHistory.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
