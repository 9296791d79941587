"""
User rewards summary repository.

Upserts are single INSERT ... ON CONFLICT statements.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_engine.models.user_rewards_summary import UserRewardsSummary
from rewards_engine.repositories.base import BaseRepository
from rewards_engine.utils.datetime_utils import utc_now


class UserRewardsSummaryRepository(BaseRepository[UserRewardsSummary]):
    """Repository for per-user rewards summary rows."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(UserRewardsSummary, session)

    async def get_trust_score(self, user_id: str) -> int | None:
        """Stored trust score, or None if the user has no summary row."""
        stmt = select(UserRewardsSummary.trust_score).where(
            UserRewardsSummary.user_id == user_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert_trust_score(self, user_id: str, trust_score: int) -> None:
        """
        Insert or update the user's trust score.

        Args:
            user_id: User ID
            trust_score: New score (0-100)
        """
        now = utc_now()
        stmt = insert(UserRewardsSummary).values(
            user_id=user_id,
            trust_score=trust_score,
            total_earned=Decimal("0"),
            available_balance=Decimal("0"),
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[UserRewardsSummary.user_id],
            set_={"trust_score": trust_score, "updated_at": now},
        )
        await self.session.execute(stmt)

    async def upsert_earnings(
        self,
        user_id: str,
        total_earned: Decimal,
        available_balance: Decimal,
        default_trust_score: int,
    ) -> None:
        """
        Insert or update the user's aggregate earnings.

        Args:
            user_id: User ID
            total_earned: Aggregated referral earnings
            available_balance: Balance available to the user
            default_trust_score: Score used if the row is created here
        """
        now = utc_now()
        stmt = insert(UserRewardsSummary).values(
            user_id=user_id,
            trust_score=default_trust_score,
            total_earned=total_earned,
            available_balance=available_balance,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[UserRewardsSummary.user_id],
            set_={
                "total_earned": total_earned,
                "available_balance": available_balance,
                "updated_at": now,
            },
        )
        await self.session.execute(stmt)
