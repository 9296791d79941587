"""
Auto-share processing.

When a referred user earns, every verified referral pointing at that user
credits its referrer with a small share of the earning. The cascade is a
single hop: a referrer's auto-share credit never triggers further shares.
"""

from decimal import Decimal

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_engine.config.constants import AUTO_SHARE_SCALE
from rewards_engine.models.referral_tracking import ReferralTracking
from rewards_engine.repositories.referral_tracking_repository import (
    ReferralTrackingRepository,
)
from rewards_engine.services.notification.change_notifier import ChangeNotifier
from rewards_engine.services.referral.earnings_manager import (
    ReferralEarningsManager,
)
from rewards_engine.services.wallet.wallet_client import WalletClient
from rewards_engine.utils.exceptions import MUST_LOG
from rewards_engine.utils.validation import to_decimal

AUTO_SHARE_REASON = "Auto-share from referral earnings"


def auto_share_amount(earnings: Decimal, auto_share_percentage: Decimal) -> Decimal:
    """Share of earnings credited upstream (0.5 = 0.5%)."""
    return earnings * auto_share_percentage * AUTO_SHARE_SCALE


class AutoShareProcessor:
    """Cascades a share of a referred user's earnings to their referrers."""

    def __init__(
        self,
        session: AsyncSession,
        wallet_client: WalletClient | None = None,
        notifier: ChangeNotifier | None = None,
    ) -> None:
        """
        Initialize auto-share processor.

        Args:
            session: Async database session
            wallet_client: Wallet client passed to the earnings path
            notifier: Optional change notifier for the referral channel
        """
        self.session = session
        self.referral_repo = ReferralTrackingRepository(session)
        self.earnings_manager = ReferralEarningsManager(
            session, wallet_client=wallet_client, notifier=notifier
        )

    async def process_auto_sharing(
        self, referred_user_id: str, earnings: Decimal | float | int
    ) -> bool:
        """
        Credit upstream referrers with their auto-share of an earning.

        Each referral is processed in its own transaction. Processing stops
        at the first failing referral; referrals already committed stay
        committed.

        Args:
            referred_user_id: User who earned
            earnings: Amount the user earned

        Returns:
            True if every referral was credited (or there was none),
            False on invalid earnings or the first failed referral
        """
        amount = to_decimal(earnings)
        if amount is None:
            logger.warning(
                "Rejected invalid earnings for auto-share",
                extra={"referred_user_id": referred_user_id, "earnings": str(earnings)},
            )
            return False
        if amount <= 0:
            logger.debug(
                "No auto-share for non-positive earnings",
                extra={"referred_user_id": referred_user_id},
            )
            return True

        try:
            referrals = await self.referral_repo.get_verified_for_referred_user(
                referred_user_id
            )
        except SQLAlchemyError as e:
            logger.opt(exception=e).error(
                f"Database error loading referrers of {referred_user_id}: {e}"
            )
            return False

        if not referrals:
            logger.debug(
                "No verified referrer for auto-share",
                extra={"referred_user_id": referred_user_id},
            )
            return True

        for referral in referrals:
            if not await self._share_with(referral, amount):
                return False
        return True

    async def _share_with(
        self, referral: ReferralTracking, earnings: Decimal
    ) -> bool:
        """Apply one referral's share and commit it as a unit."""
        referral_id = referral.id
        referrer_id = referral.referrer_id
        amount = auto_share_amount(earnings, referral.auto_share_percentage)
        if amount <= 0:
            return True

        try:
            applied = await self.earnings_manager.apply_earning(
                referrer_id,
                amount,
                AUTO_SHARE_REASON,
                referral.commission_percentage,
                referral_id=referral_id,
            )
            await self.referral_repo.increment_auto_share(referral_id, amount)
            await self.session.commit()
        except MUST_LOG as e:
            await self.session.rollback()
            logger.opt(exception=e).error(
                f"Auto-share failed for referral {referral_id}: {e}"
            )
            return False

        logger.info(
            "Auto-share credited",
            extra={
                "referral_id": referral_id,
                "referrer_id": referrer_id,
                "share_amount": str(amount),
                "commission": str(applied.commission),
            },
        )

        await self.earnings_manager.publish(applied.referral)
        return True
