"""
User daily stats repository (read-only).
"""

from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_engine.models.user_daily_stats import UserDailyStats
from rewards_engine.repositories.base import BaseRepository


class UserDailyStatsRepository(BaseRepository[UserDailyStats]):
    """Repository for per-day activity rows."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(UserDailyStats, session)

    async def get_recent_dates(self, user_id: str, limit: int) -> list[date]:
        """Most recent activity dates, newest first."""
        stmt = (
            select(UserDailyStats.stats_date)
            .where(UserDailyStats.user_id == user_id)
            .order_by(UserDailyStats.stats_date.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
