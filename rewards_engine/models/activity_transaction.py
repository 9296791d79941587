"""
ActivityTransaction model.

Immutable ledger of value movements and activity events. Referral
commissions and bonuses are written here; the earnings columns on
referral_tracking must always be reconstructible from these rows.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import uuid4

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from rewards_engine.models.base import Base
from rewards_engine.models.enums import TransactionStatus
from rewards_engine.models.types import IdType, MoneyType


class ActivityTransaction(Base):
    """Ledger entry (append-only)."""

    __tablename__ = "activity_transactions"
    __table_args__ = (
        Index(
            "idx_activity_transactions_user_type_created",
            "user_id",
            "activity_type",
            "created_at",
        ),
        Index("idx_activity_transactions_source", "source_type", "source_id"),
    )

    id: Mapped[str] = mapped_column(
        IdType, primary_key=True, default=lambda: str(uuid4())
    )
    user_id: Mapped[str] = mapped_column(IdType, nullable=False, index=True)

    activity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    amount_eloits: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    source_id: Mapped[str | None] = mapped_column(IdType, nullable=True)
    source_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    extra_data: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSONB, nullable=True
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TransactionStatus.COMPLETED.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ActivityTransaction(id={self.id}, user_id={self.user_id}, "
            f"type={self.activity_type}, amount={self.amount_eloits})>"
        )
