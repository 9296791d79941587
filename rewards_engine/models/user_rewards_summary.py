"""
UserRewardsSummary model.

One row per user holding the current trust score and aggregate earnings.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column

from rewards_engine.models.base import Base
from rewards_engine.models.types import IdType, MoneyType


class UserRewardsSummary(Base):
    """Per-user rewards summary."""

    __tablename__ = "user_rewards_summary"
    __table_args__ = (
        CheckConstraint(
            'trust_score >= 0 AND trust_score <= 100',
            name='check_summary_trust_score_range'
        ),
        CheckConstraint(
            'total_earned >= 0',
            name='check_summary_total_earned_non_negative'
        ),
    )

    user_id: Mapped[str] = mapped_column(IdType, primary_key=True)

    trust_score: Mapped[int] = mapped_column(
        Integer, nullable=False, default=50
    )
    total_earned: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    available_balance: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<UserRewardsSummary(user_id={self.user_id}, "
            f"trust_score={self.trust_score})>"
        )
