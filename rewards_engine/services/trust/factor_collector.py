"""
Trust factor collector.

Gathers the raw behavioural counts for one user and scales them into
TrustFactor values.
"""

from collections.abc import Callable
from datetime import datetime, timedelta

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_engine.config.constants import (
    ENGAGEMENT_ACTIVITY_TYPES,
    ENGAGEMENT_WINDOW_DAYS,
    SPAM_WINDOW_DAYS,
    STREAK_LOOKBACK_ROWS,
    VERIFIED_TRANSACTION_TYPES,
)
from rewards_engine.repositories.activity_transaction_repository import (
    ActivityTransactionRepository,
)
from rewards_engine.repositories.profile_repository import ProfileRepository
from rewards_engine.repositories.referral_tracking_repository import (
    ReferralTrackingRepository,
)
from rewards_engine.repositories.spam_detection_repository import (
    SpamDetectionRepository,
)
from rewards_engine.repositories.user_daily_stats_repository import (
    UserDailyStatsRepository,
)
from rewards_engine.services.trust import scoring
from rewards_engine.services.trust.scoring import TrustFactor
from rewards_engine.utils.datetime_utils import days_between, utc_now


class TrustFactorCollector:
    """Collects trust factors from the store (read-only)."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize collector.

        Args:
            session: Async database session
            clock: Source of "now" (UTC, timezone-aware)
        """
        self.session = session
        self.clock = clock
        self.profile_repo = ProfileRepository(session)
        self.activity_repo = ActivityTransactionRepository(session)
        self.daily_stats_repo = UserDailyStatsRepository(session)
        self.referral_repo = ReferralTrackingRepository(session)
        self.spam_repo = SpamDetectionRepository(session)

    async def collect(self, user_id: str) -> TrustFactor | None:
        """
        Collect all factors for a user.

        Store errors propagate to the caller.

        Args:
            user_id: User ID

        Returns:
            TrustFactor, or None if the user has no profile
        """
        profile = await self.profile_repo.get_by_id(user_id)
        if profile is None:
            logger.debug(
                "No profile for trust factors",
                extra={"user_id": user_id},
            )
            return None

        now = self.clock()

        engagement_count = await self.activity_repo.count_by_types_since(
            user_id,
            ENGAGEMENT_ACTIVITY_TYPES,
            now - timedelta(days=ENGAGEMENT_WINDOW_DAYS),
        )
        activity_dates = await self.daily_stats_repo.get_recent_dates(
            user_id, STREAK_LOOKBACK_ROWS
        )
        verified_referrals = await self.referral_repo.count_verified_by_referrer(
            user_id
        )
        spam_incidents = await self.spam_repo.count_unresolved_high_since(
            user_id, now - timedelta(days=SPAM_WINDOW_DAYS)
        )
        verified_transactions = await self.activity_repo.count_completed_by_types(
            user_id, VERIFIED_TRANSACTION_TYPES
        )

        streak = scoring.current_streak(activity_dates, now.date())

        return TrustFactor(
            engagement_quality=min(scoring.engagement_quality(engagement_count), 100),
            activity_consistency=min(scoring.activity_consistency(streak), 100),
            peer_validation=min(scoring.peer_validation(verified_referrals), 100),
            spam_incidents=spam_incidents,
            profile_completeness=scoring.profile_completeness(profile),
            account_age_days=days_between(profile.created_at, now),
            verified_transactions=verified_transactions,
        )

    async def days_since_last_activity(self, user_id: str) -> int | None:
        """
        Whole days since the user's most recent ledger entry.

        Returns:
            Days elapsed, or None if the user has never been active
        """
        last_activity = await self.activity_repo.get_last_activity_at(user_id)
        if last_activity is None:
            return None
        return days_between(last_activity, self.clock())
