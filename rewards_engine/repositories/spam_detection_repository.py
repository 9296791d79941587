"""
Spam detection repository (read-only).
"""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_engine.models.enums import SpamSeverity
from rewards_engine.models.spam_detection import SpamDetection
from rewards_engine.repositories.base import BaseRepository


class SpamDetectionRepository(BaseRepository[SpamDetection]):
    """Repository for spam reports."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(SpamDetection, session)

    async def count_unresolved_high_since(
        self, user_id: str, since: datetime
    ) -> int:
        """
        Count unresolved high-severity reports created after since.

        Args:
            user_id: Reported user
            since: Window start

        Returns:
            Number of open incidents
        """
        stmt = select(func.count(SpamDetection.id)).where(
            SpamDetection.user_id == user_id,
            SpamDetection.severity == SpamSeverity.HIGH.value,
            SpamDetection.created_at >= since,
            SpamDetection.resolved_at.is_(None),
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0
