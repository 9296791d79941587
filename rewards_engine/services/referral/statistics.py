"""
Referral statistics module.

Derives the per-referrer rollup (counts, earnings sums, average commission
and effective tier) from the referrer's referral rows.
"""

from collections import Counter
from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_engine.models.enums import ReferralStatus, ReferralTier
from rewards_engine.models.referral_tracking import ReferralTracking
from rewards_engine.repositories.referral_tracking_repository import (
    ReferralTrackingRepository,
)
from rewards_engine.schemas.referral import ReferralStats
from rewards_engine.services.referral.tiers import higher_tier, tier_for_earnings

PERCENT_QUANT = Decimal("0.0001")


def build_referral_stats(referrals: Sequence[ReferralTracking]) -> ReferralStats:
    """
    Aggregate referral rows into stats.

    avg_commission_percentage is weighted by each referral's lifetime
    earnings; with no earnings at all it falls back to the plain mean.

    Args:
        referrals: All referrals of one referrer

    Returns:
        ReferralStats (defaults when referrals is empty)
    """
    if not referrals:
        return ReferralStats()

    by_status = Counter(r.status for r in referrals)
    total_earnings = sum((r.earnings_total for r in referrals), Decimal("0"))

    if total_earnings > 0:
        weighted = sum(
            (r.commission_percentage * r.earnings_total for r in referrals),
            Decimal("0"),
        )
        avg_rate = weighted / total_earnings
    else:
        avg_rate = sum(
            (r.commission_percentage for r in referrals), Decimal("0")
        ) / len(referrals)

    top_tier = ReferralTier.BRONZE
    for referral in referrals:
        if referral.status != ReferralStatus.INACTIVE:
            top_tier = higher_tier(top_tier, referral.tier)

    return ReferralStats(
        total_referrals=len(referrals),
        active_referrals=sum(
            1 for r in referrals if r.status != ReferralStatus.INACTIVE
        ),
        verified_referrals=by_status.get(ReferralStatus.VERIFIED.value, 0),
        by_status=dict(by_status),
        total_earnings=total_earnings,
        this_month_earnings=sum(
            (r.earnings_this_month for r in referrals), Decimal("0")
        ),
        last_month_earnings=sum(
            (r.earnings_last_month for r in referrals), Decimal("0")
        ),
        avg_commission_percentage=(avg_rate * 100).quantize(
            PERCENT_QUANT, rounding=ROUND_HALF_UP
        ),
        top_tier=top_tier,
        referral_tier=tier_for_earnings(total_earnings),
        auto_share_total=sum(
            (r.auto_share_total for r in referrals), Decimal("0")
        ),
    )


class ReferralStatisticsManager:
    """Manages referral statistics."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize statistics manager."""
        self.session = session
        self.referral_repo = ReferralTrackingRepository(session)

    async def compute_referral_stats(self, user_id: str) -> ReferralStats:
        """
        Compute stats for a referrer.

        Raises:
            SQLAlchemyError: store failure
        """
        referrals = await self.referral_repo.get_by_referrer(user_id)
        return build_referral_stats(referrals)

    async def get_referral_stats(self, user_id: str) -> ReferralStats | None:
        """
        Get referral statistics for user.

        Args:
            user_id: Referrer user ID

        Returns:
            ReferralStats, or None on store failure
        """
        try:
            return await self.compute_referral_stats(user_id)
        except SQLAlchemyError as e:
            logger.opt(exception=e).error(
                f"Database error computing referral stats for {user_id}: {e}"
            )
            return None
