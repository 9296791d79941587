"""
Referral tracking repository.

Data access layer for ReferralTracking. Every earnings mutation is a single
atomic UPDATE statement; there is no read-then-write on counters.
"""

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_engine.models.enums import ReferralStatus
from rewards_engine.models.referral_tracking import ReferralTracking
from rewards_engine.repositories.base import BaseRepository


class ReferralTrackingRepository(BaseRepository[ReferralTracking]):
    """Referral tracking repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral tracking repository."""
        super().__init__(ReferralTracking, session)

    async def get_by_code(
        self, referral_code: str, status: str | None = None
    ) -> ReferralTracking | None:
        """
        Get referral by code.

        Args:
            referral_code: Referral code
            status: Optional status restriction

        Returns:
            Referral or None
        """
        filters: dict[str, Any] = {"referral_code": referral_code}
        if status:
            filters["status"] = status
        return await self.get_by(**filters)

    async def get_by_referrer(
        self,
        referrer_id: str,
        limit: int | None = None,
        offset: int = 0,
        status: str | None = None,
        tier: str | None = None,
    ) -> list[ReferralTracking]:
        """
        Get referrals created by a referrer, newest first.

        Args:
            referrer_id: Referrer user ID
            limit: Max rows (None = all)
            offset: Rows to skip
            status: Optional status filter
            tier: Optional tier filter

        Returns:
            List of referrals
        """
        stmt = select(ReferralTracking).where(
            ReferralTracking.referrer_id == referrer_id
        )
        if status:
            stmt = stmt.where(ReferralTracking.status == status)
        if tier:
            stmt = stmt.where(ReferralTracking.tier == tier)

        stmt = stmt.order_by(ReferralTracking.created_at.desc())
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_verified_for_referred_user(
        self, referred_user_id: str
    ) -> list[ReferralTracking]:
        """
        Get verified referrals where the user is the referred party.

        Args:
            referred_user_id: Referred user ID

        Returns:
            List of verified referrals (one per upstream referrer)
        """
        return await self.find_by(
            referred_user_id=referred_user_id,
            status=ReferralStatus.VERIFIED.value,
        )

    async def count_verified_by_referrer(self, referrer_id: str) -> int:
        """Count the referrer's verified referrals."""
        return await self.count(
            referrer_id=referrer_id,
            status=ReferralStatus.VERIFIED.value,
        )

    async def transition_status(
        self,
        referral_id: str,
        from_statuses: Iterable[str],
        to_status: str,
        **extra: Any,
    ) -> ReferralTracking | None:
        """
        Conditionally move a referral to a new status.

        The WHERE clause on the current status makes concurrent or retried
        transitions apply at most once.

        Args:
            referral_id: Referral ID
            from_statuses: Statuses the row must currently have
            to_status: Target status
            **extra: Additional columns to set with the transition

        Returns:
            Updated referral, or None if no row was transitioned
        """
        stmt = (
            update(ReferralTracking)
            .where(
                ReferralTracking.id == referral_id,
                ReferralTracking.status.in_(list(from_statuses)),
            )
            .values(status=to_status, **extra)
            .returning(ReferralTracking)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def increment_earnings(
        self, referral_id: str, delta: Decimal
    ) -> ReferralTracking | None:
        """
        Atomically add delta to earnings_total and earnings_this_month.

        Args:
            referral_id: Referral ID
            delta: Commission amount

        Returns:
            Updated referral with the new totals, or None if missing
        """
        stmt = (
            update(ReferralTracking)
            .where(ReferralTracking.id == referral_id)
            .values(
                earnings_total=ReferralTracking.earnings_total + delta,
                earnings_this_month=ReferralTracking.earnings_this_month + delta,
            )
            .returning(ReferralTracking)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upgrade_tier(
        self,
        referral_id: str,
        new_tier: str,
        commission_percentage: Decimal,
        lower_tiers: Iterable[str],
    ) -> bool:
        """
        Move a referral to a higher tier.

        Only rows currently in one of lower_tiers are touched, so a tier can
        never be lowered by a racing writer.

        Returns:
            True if the tier changed
        """
        lower = list(lower_tiers)
        if not lower:
            return False

        stmt = (
            update(ReferralTracking)
            .where(
                ReferralTracking.id == referral_id,
                ReferralTracking.tier.in_(lower),
            )
            .values(tier=new_tier, commission_percentage=commission_percentage)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def increment_auto_share(
        self, referral_id: str, delta: Decimal
    ) -> bool:
        """Atomically add delta to auto_share_total."""
        stmt = (
            update(ReferralTracking)
            .where(ReferralTracking.id == referral_id)
            .values(auto_share_total=ReferralTracking.auto_share_total + delta)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def set_auto_share_percentage(
        self, referral_id: str, percentage: Decimal
    ) -> ReferralTracking | None:
        """Set auto_share_percentage (range checked by caller and DB)."""
        stmt = (
            update(ReferralTracking)
            .where(ReferralTracking.id == referral_id)
            .values(auto_share_percentage=percentage)
            .returning(ReferralTracking)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def mark_first_purchase(
        self, referral_id: str, purchased_at: datetime
    ) -> ReferralTracking | None:
        """Set first_purchase_date once; later calls leave it unchanged."""
        stmt = (
            update(ReferralTracking)
            .where(
                ReferralTracking.id == referral_id,
                ReferralTracking.first_purchase_date.is_(None),
            )
            .values(first_purchase_date=purchased_at)
            .returning(ReferralTracking)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def overwrite_earnings(
        self,
        referral_id: str,
        earnings_total: Decimal,
        earnings_this_month: Decimal,
    ) -> ReferralTracking | None:
        """Rewrite materialized earnings (reconciliation only)."""
        stmt = (
            update(ReferralTracking)
            .where(ReferralTracking.id == referral_id)
            .values(
                earnings_total=earnings_total,
                earnings_this_month=earnings_this_month,
            )
            .returning(ReferralTracking)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def rollover_monthly_earnings(self) -> int:
        """
        Close the month for every referral in one statement.

        earnings_last_month takes the current month's value and
        earnings_this_month restarts at zero.

        Returns:
            Number of rows rolled over
        """
        stmt = (
            update(ReferralTracking)
            .values(
                earnings_last_month=ReferralTracking.earnings_this_month,
                earnings_this_month=Decimal("0"),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def sum_earnings_by_referrer(self, referrer_id: str) -> Decimal:
        """
        Sum earnings_total across a referrer's referrals in SQL.

        Args:
            referrer_id: Referrer user ID

        Returns:
            Total earnings (0 if none)
        """
        stmt = select(
            func.coalesce(func.sum(ReferralTracking.earnings_total), Decimal("0"))
        ).where(ReferralTracking.referrer_id == referrer_id)
        result = await self.session.execute(stmt)
        return result.scalar() or Decimal("0")
