"""
UserDailyStats model (read-only for this engine).
"""

from datetime import date
from uuid import uuid4

from sqlalchemy import Date, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from rewards_engine.models.base import Base
from rewards_engine.models.types import IdType


class UserDailyStats(Base):
    """One row per user per day with recorded activity."""

    __tablename__ = "user_daily_stats"
    __table_args__ = (
        UniqueConstraint("user_id", "stats_date", name="uq_user_daily_stats_day"),
    )

    id: Mapped[str] = mapped_column(
        IdType, primary_key=True, default=lambda: str(uuid4())
    )
    user_id: Mapped[str] = mapped_column(IdType, nullable=False, index=True)
    stats_date: Mapped[date] = mapped_column(Date, nullable=False)
