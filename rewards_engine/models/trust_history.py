"""
TrustHistory model.

Append-only log of trust score transitions.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import uuid4

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from rewards_engine.models.base import Base
from rewards_engine.models.types import IdType, PercentType


class TrustHistory(Base):
    """
    Trust score change entry.

    Created once per score update, never mutated or deleted.
    The idempotency key collapses retried updates for the same
    (user, reason, time bucket) into one row.
    """

    __tablename__ = "trust_history"
    __table_args__ = (
        Index("idx_trust_history_user_created", "user_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(
        IdType, primary_key=True, default=lambda: str(uuid4())
    )
    user_id: Mapped[str] = mapped_column(IdType, nullable=False, index=True)

    old_score: Mapped[int] = mapped_column(Integer, nullable=False)
    new_score: Mapped[int] = mapped_column(Integer, nullable=False)
    change_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    change_percentage: Mapped[Decimal] = mapped_column(
        PercentType, nullable=False, default=Decimal("0")
    )
    change_reason: Mapped[str] = mapped_column(Text, nullable=False)
    factor_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default="manual"
    )

    # "metadata" is reserved on declarative classes
    extra_data: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONB, nullable=False, default=dict
    )

    idempotency_key: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<TrustHistory(user_id={self.user_id}, "
            f"{self.old_score}->{self.new_score})>"
        )
