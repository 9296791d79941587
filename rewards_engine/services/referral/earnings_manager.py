"""
Referral earnings management module.

Records commission earnings against the activity ledger, keeps the
materialized referral aggregates and tiers in step, and pushes the credited
amount to the wallet service before the transaction commits.
"""

from dataclasses import dataclass
from decimal import Decimal

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from rewards_engine.config.constants import (
    REFERRAL_ACTIVITY_CATEGORY,
    REFERRAL_ACTIVITY_TYPE,
    REFERRAL_SOURCE_TYPE,
)
from rewards_engine.config.settings import settings
from rewards_engine.models.referral_tracking import ReferralTracking
from rewards_engine.repositories.activity_transaction_repository import (
    ActivityTransactionRepository,
)
from rewards_engine.repositories.referral_tracking_repository import (
    ReferralTrackingRepository,
)
from rewards_engine.repositories.user_rewards_summary_repository import (
    UserRewardsSummaryRepository,
)
from rewards_engine.schemas.mapping import to_referral_record
from rewards_engine.schemas.referral import ReferralRecord
from rewards_engine.services.notification.change_notifier import (
    REFERRAL_CHANNEL,
    ChangeNotifier,
)
from rewards_engine.services.referral.statistics import (
    ReferralStatisticsManager,
)
from rewards_engine.services.referral.tiers import (
    calculate_commission,
    commission_rate,
    tier_for_earnings,
    tier_rank,
    tiers_below,
)
from rewards_engine.services.wallet.wallet_client import WalletClient
from rewards_engine.utils.datetime_utils import month_start, utc_now
from rewards_engine.utils.db_decorators import with_auto_commit
from rewards_engine.utils.exceptions import (
    MUST_LOG,
    MalformedRowError,
    ReferralNotFoundError,
)
from rewards_engine.utils.validation import to_decimal


@dataclass
class AppliedEarning:
    """Result of one applied (uncommitted) earning."""

    commission: Decimal
    referral: ReferralTracking | None = None


class ReferralEarningsManager:
    """Manages referral earnings operations."""

    def __init__(
        self,
        session: AsyncSession,
        wallet_client: WalletClient | None = None,
        notifier: ChangeNotifier | None = None,
    ) -> None:
        """
        Initialize earnings manager.

        Args:
            session: Async database session
            wallet_client: Wallet client (None skips the balance push)
            notifier: Optional change notifier for the referral channel
        """
        self.session = session
        self.wallet_client = wallet_client
        self.notifier = notifier
        self.referral_repo = ReferralTrackingRepository(session)
        self.transaction_repo = ActivityTransactionRepository(session)
        self.summary_repo = UserRewardsSummaryRepository(session)
        self.stats_manager = ReferralStatisticsManager(session)

    async def apply_earning(
        self,
        referrer_id: str,
        amount: Decimal,
        reason: str,
        rate: Decimal,
        referral_id: str | None = None,
    ) -> AppliedEarning:
        """
        Apply one earning inside the caller's transaction (no commit).

        Steps:
        1. Append the ledger entry for amount * rate
        2. Atomically bump the referral's earnings counters
        3. Upgrade the referral's tier if its new total crossed a threshold
        4. Refresh the referrer's rewards summary
        5. Push the commission to the wallet

        Args:
            referrer_id: Credited referrer
            amount: Base amount
            reason: Reason stored with the ledger entry
            rate: Commission rate (1 for flat bonuses)
            referral_id: Referral the earning belongs to

        Returns:
            AppliedEarning with the commission and the updated referral

        Raises:
            ReferralNotFoundError: referral_id does not exist
            WalletUpdateError: wallet rejected the balance update
            SQLAlchemyError: store failure
        """
        commission = calculate_commission(amount, rate)

        await self.transaction_repo.add_entry(
            user_id=referrer_id,
            activity_type=REFERRAL_ACTIVITY_TYPE,
            amount=commission,
            description=f"{reason} ({rate * 100:.1f}% commission)",
            category=REFERRAL_ACTIVITY_CATEGORY,
            source_id=referral_id,
            source_type=REFERRAL_SOURCE_TYPE if referral_id else None,
            metadata={
                "reason": reason,
                "commission_percentage": str(rate),
                "base_amount": str(amount),
            },
        )

        referral = None
        if referral_id:
            referral = await self.referral_repo.increment_earnings(
                referral_id, commission
            )
            if referral is None:
                raise ReferralNotFoundError(referral_id)
            await self._maybe_upgrade_tier(referral)

        total_earned = await self.referral_repo.sum_earnings_by_referrer(
            referrer_id
        )
        await self.summary_repo.upsert_earnings(
            referrer_id,
            total_earned=total_earned,
            available_balance=total_earned,
            default_trust_score=settings.trust_default_score,
        )

        if self.wallet_client is not None:
            await self.wallet_client.update_balance(referrer_id, commission)

        return AppliedEarning(commission=commission, referral=referral)

    async def _maybe_upgrade_tier(self, referral: ReferralTracking) -> None:
        """Promote referral if its earnings crossed a tier threshold."""
        new_tier = tier_for_earnings(referral.earnings_total)
        if tier_rank(new_tier) <= tier_rank(referral.tier):
            return

        new_rate = commission_rate(new_tier)
        upgraded = await self.referral_repo.upgrade_tier(
            referral.id, new_tier.value, new_rate, tiers_below(new_tier)
        )
        if not upgraded:
            return

        old_tier = referral.tier
        set_committed_value(referral, "tier", new_tier.value)
        set_committed_value(referral, "commission_percentage", new_rate)

        logger.info(
            "Referral tier upgraded",
            extra={
                "referral_id": referral.id,
                "old_tier": old_tier,
                "new_tier": new_tier.value,
                "earnings_total": str(referral.earnings_total),
            },
        )

    async def record_referral_earning(
        self,
        referrer_id: str,
        amount: Decimal | float | int,
        reason: str,
        referral_id: str | None = None,
    ) -> bool:
        """
        Record a commission earning for a referrer.

        The rate is the referral's stored commission rate, or the
        referrer's aggregate tier rate when no referral is given.

        Args:
            referrer_id: Referrer user ID
            amount: Base amount the commission is taken from (int, float,
                str or Decimal)
            reason: Reason for the earning
            referral_id: Optional referral the earning belongs to

        Returns:
            True if the earning was committed
        """
        base_amount = to_decimal(amount)
        if base_amount is None or base_amount <= 0:
            logger.warning(
                "Rejected invalid referral earning amount",
                extra={"referrer_id": referrer_id, "amount": str(amount)},
            )
            return False

        try:
            rate = await self._resolve_rate(referrer_id, referral_id)
            if rate is None:
                return False

            applied = await self.apply_earning(
                referrer_id, base_amount, reason, rate, referral_id
            )
            await self.session.commit()
        except MUST_LOG as e:
            await self.session.rollback()
            logger.opt(exception=e).error(
                f"Failed to record referral earning for {referrer_id}: {e}"
            )
            return False

        logger.info(
            "Referral earning recorded",
            extra={
                "referrer_id": referrer_id,
                "referral_id": referral_id,
                "base_amount": str(base_amount),
                "commission": str(applied.commission),
                "rate": str(rate),
            },
        )

        await self.publish(applied.referral)
        return True

    async def _resolve_rate(
        self, referrer_id: str, referral_id: str | None
    ) -> Decimal | None:
        """Commission rate for an earning, None if the referral is unusable."""
        if referral_id is None:
            stats = await self.stats_manager.compute_referral_stats(referrer_id)
            return commission_rate(stats.referral_tier)

        referral = await self.referral_repo.get_by_id(referral_id)
        if referral is None:
            logger.warning(
                "Referral earning for unknown referral",
                extra={"referral_id": referral_id},
            )
            return None
        if referral.referrer_id != referrer_id:
            logger.warning(
                "Referral earning for referral owned by another referrer",
                extra={"referral_id": referral_id, "referrer_id": referrer_id},
            )
            return None
        return referral.commission_percentage

    async def reconcile_referral_earnings(
        self, referral_id: str
    ) -> ReferralRecord | None:
        """
        Rebuild a referral's earnings aggregates from the ledger.

        earnings_total and earnings_this_month are recomputed from completed
        ledger entries; the tier is only ever moved up.

        Args:
            referral_id: Referral ID

        Returns:
            Reconciled referral, or None if missing or on failure
        """
        try:
            referral = await self._reconcile(referral_id)
            record = to_referral_record(referral)
        except (SQLAlchemyError, MalformedRowError) as e:
            logger.opt(exception=e).error(
                f"Failed to reconcile referral {referral_id}: {e}"
            )
            return None

        if record is not None and self.notifier is not None:
            await self.notifier.publish(
                REFERRAL_CHANNEL, record.referrer_id, record
            )
        return record

    @with_auto_commit
    async def _reconcile(self, referral_id: str) -> ReferralTracking | None:
        """Rewrite aggregates from ledger sums (committed by decorator)."""
        total = await self.transaction_repo.sum_by_source(
            REFERRAL_SOURCE_TYPE, referral_id
        )
        this_month = await self.transaction_repo.sum_by_source(
            REFERRAL_SOURCE_TYPE, referral_id, since=month_start(utc_now())
        )

        referral = await self.referral_repo.overwrite_earnings(
            referral_id, earnings_total=total, earnings_this_month=this_month
        )
        if referral is None:
            logger.warning(
                "Cannot reconcile unknown referral",
                extra={"referral_id": referral_id},
            )
            return None

        await self._maybe_upgrade_tier(referral)

        logger.info(
            "Referral earnings reconciled",
            extra={
                "referral_id": referral_id,
                "earnings_total": str(total),
                "earnings_this_month": str(this_month),
            },
        )
        return referral

    async def rollover_monthly_earnings(self) -> int:
        """
        Close the month for all referrals.

        Returns:
            Rows rolled over (0 on failure)
        """
        try:
            count = await self._rollover()
        except SQLAlchemyError as e:
            logger.opt(exception=e).error(
                f"Failed to roll over monthly referral earnings: {e}"
            )
            return 0

        logger.info(
            "Monthly referral earnings rolled over",
            extra={"rows": count},
        )
        return count

    @with_auto_commit
    async def _rollover(self) -> int:
        return await self.referral_repo.rollover_monthly_earnings()

    async def publish(self, referral: ReferralTracking | None) -> None:
        """Push a committed referral row to its referrer's subscribers."""
        if self.notifier is None or referral is None:
            return
        try:
            record = to_referral_record(referral)
        except MalformedRowError as e:
            logger.warning(f"Not publishing malformed referral row: {e}")
            return
        await self.notifier.publish(REFERRAL_CHANNEL, record.referrer_id, record)
