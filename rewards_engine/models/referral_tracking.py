"""
ReferralTracking model.

One row per referral relationship (referrer -> referred user).
"""

from datetime import UTC, datetime
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from rewards_engine.models.base import Base
from rewards_engine.models.enums import ReferralStatus, ReferralTier
from rewards_engine.models.types import IdType, MoneyType, RateType


class ReferralTracking(Base):
    """
    Referral relationship entity.

    Lifecycle:
    - pending: created by track_referral
    - verified: referred user completed signup (one-time bonus credited)
    - active / inactive: driven by external policy

    Rows are never deleted, only status-transitioned. The earnings columns are
    materialized aggregates over the activity_transactions ledger.

    Attributes:
        id: Primary key (UUID string)
        referrer_id: User who shared the code
        referred_user_id: User who signed up with it
        referral_code: Unique, immutable code
        status: Lifecycle state
        tier: Earnings tier (monotonically non-decreasing)
        commission_percentage: Rate fixed by tier (0.05 = 5%)
        auto_share_percentage: Share of referred user earnings (0.5 = 0.5%)
    """

    __tablename__ = "referral_tracking"
    __table_args__ = (
        CheckConstraint(
            'earnings_total >= 0',
            name='check_referral_earnings_total_non_negative'
        ),
        CheckConstraint(
            'earnings_this_month >= 0',
            name='check_referral_earnings_this_month_non_negative'
        ),
        CheckConstraint(
            'earnings_last_month >= 0',
            name='check_referral_earnings_last_month_non_negative'
        ),
        CheckConstraint(
            'earnings_this_month <= earnings_total',
            name='check_referral_month_within_total'
        ),
        CheckConstraint(
            'auto_share_total >= 0',
            name='check_referral_auto_share_total_non_negative'
        ),
        CheckConstraint(
            'auto_share_percentage >= 0 AND auto_share_percentage <= 1',
            name='check_referral_auto_share_percentage_range'
        ),
        CheckConstraint(
            "status IN ('pending', 'verified', 'active', 'inactive')",
            name='check_referral_status_values'
        ),
        CheckConstraint(
            "tier IN ('bronze', 'silver', 'gold', 'platinum')",
            name='check_referral_tier_values'
        ),
        Index("idx_referral_tracking_referrer_status", "referrer_id", "status"),
        Index(
            "idx_referral_tracking_referred_status",
            "referred_user_id",
            "status",
        ),
    )

    # Primary key
    id: Mapped[str] = mapped_column(
        IdType, primary_key=True, default=lambda: str(uuid4())
    )

    # Relationship parties
    referrer_id: Mapped[str] = mapped_column(
        IdType, nullable=False, index=True
    )
    referred_user_id: Mapped[str] = mapped_column(
        IdType, nullable=False, index=True
    )
    referral_code: Mapped[str] = mapped_column(
        String(32), nullable=False, unique=True, index=True
    )

    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ReferralStatus.PENDING.value,
    )
    referral_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    verification_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    first_purchase_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Earnings (materialized from the ledger)
    earnings_total: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    earnings_this_month: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    earnings_last_month: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Tier and rates
    tier: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ReferralTier.BRONZE.value,
    )
    commission_percentage: Mapped[Decimal] = mapped_column(
        RateType, default=Decimal("0.05"), nullable=False
    )

    # Auto-share
    auto_share_total: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    auto_share_percentage: Mapped[Decimal] = mapped_column(
        RateType, default=Decimal("0.5"), nullable=False
    )

    # Timestamps
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
            f"<ReferralTracking(id={self.id}, referrer_id={self.referrer_id}, "
            f"status={self.status}, tier={self.tier})>"
        )
