"""
Referral ledger.

Owns the referral lifecycle: creating referral records with unique codes,
activating them (crediting the one-time signup bonus), external status
changes and per-referral settings. Every write is committed before the
referrer's subscribers are notified.
"""

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_engine.config.constants import (
    DEFAULT_AUTO_SHARE_PERCENTAGE,
    REFERRAL_CODE_MAX_ATTEMPTS,
)
from rewards_engine.config.settings import settings
from rewards_engine.models.enums import ReferralStatus, ReferralTier
from rewards_engine.models.referral_tracking import ReferralTracking
from rewards_engine.repositories.referral_tracking_repository import (
    ReferralTrackingRepository,
)
from rewards_engine.schemas.mapping import to_referral_record
from rewards_engine.schemas.referral import ReferralRecord
from rewards_engine.services.notification.change_notifier import (
    REFERRAL_CHANNEL,
    Callback,
    ChangeNotifier,
    Unsubscribe,
)
from rewards_engine.services.referral.code_generator import (
    generate_referral_code,
)
from rewards_engine.services.referral.earnings_manager import (
    ReferralEarningsManager,
)
from rewards_engine.services.referral.tiers import commission_rate
from rewards_engine.services.wallet.wallet_client import WalletClient
from rewards_engine.utils.datetime_utils import utc_now
from rewards_engine.utils.exceptions import (
    MUST_LOG,
    InvalidStatusTransitionError,
    MalformedRowError,
)
from rewards_engine.utils.validation import to_decimal

SIGNUP_BONUS_REASON = "Referral signup bonus"
FLAT_RATE = Decimal("1")

# Transitions driven by external policy once a referral is verified
POLICY_SOURCE_STATUSES = (
    ReferralStatus.VERIFIED.value,
    ReferralStatus.ACTIVE.value,
    ReferralStatus.INACTIVE.value,
)
POLICY_TARGET_STATUSES = (
    ReferralStatus.ACTIVE.value,
    ReferralStatus.INACTIVE.value,
)

# Unique index created for ReferralTracking.referral_code
REFERRAL_CODE_INDEX = "ix_referral_tracking_referral_code"


def _is_code_conflict(error: IntegrityError) -> bool:
    """True if error is the referral_code unique index rejecting a code."""
    orig = error.orig
    for source in (orig, getattr(orig, "__cause__", None)):
        name = getattr(source, "constraint_name", None)
        if name:
            return name == REFERRAL_CODE_INDEX
    return REFERRAL_CODE_INDEX in str(orig)


class ReferralLedger:
    """Creates, activates and updates referral relationships."""

    def __init__(
        self,
        session: AsyncSession,
        wallet_client: WalletClient | None = None,
        notifier: ChangeNotifier | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize referral ledger.

        Args:
            session: Async database session
            wallet_client: Wallet client used when the signup bonus is paid
            notifier: Optional change notifier for the referral channel
            clock: Source of "now"
        """
        self.session = session
        self.notifier = notifier
        self.clock = clock
        self.referral_repo = ReferralTrackingRepository(session)
        self.earnings_manager = ReferralEarningsManager(
            session, wallet_client=wallet_client, notifier=notifier
        )

    async def track_referral(
        self, referrer_id: str, referred_user_id: str
    ) -> ReferralRecord | None:
        """
        Create a pending referral with a fresh code.

        A code collision retries with a new code inside a savepoint, up to
        REFERRAL_CODE_MAX_ATTEMPTS times.

        Args:
            referrer_id: User sharing the code
            referred_user_id: User who signed up

        Returns:
            Created referral, or None if rejected or not stored
        """
        if referrer_id == referred_user_id:
            logger.warning(
                "Rejected self-referral",
                extra={"user_id": referrer_id},
            )
            return None

        try:
            referral = await self._insert_with_unique_code(
                referrer_id, referred_user_id
            )
            if referral is None:
                await self.session.rollback()
                return None
            await self.session.commit()
            record = to_referral_record(referral)
        except (SQLAlchemyError, MalformedRowError) as e:
            await self.session.rollback()
            logger.opt(exception=e).error(
                f"Failed to track referral {referrer_id} -> {referred_user_id}: {e}"
            )
            return None

        logger.info(
            "Referral tracked",
            extra={
                "referral_id": record.id,
                "referrer_id": referrer_id,
                "referred_user_id": referred_user_id,
                "referral_code": record.referral_code,
            },
        )

        await self._publish(record)
        return record

    async def _insert_with_unique_code(
        self, referrer_id: str, referred_user_id: str
    ) -> ReferralTracking | None:
        """Insert the referral row, retrying on referral_code conflicts."""
        for attempt in range(1, REFERRAL_CODE_MAX_ATTEMPTS + 1):
            now = self.clock()
            code = generate_referral_code(
                referrer_id, int(now.timestamp() * 1000)
            )
            try:
                async with self.session.begin_nested():
                    return await self.referral_repo.create(
                        referrer_id=referrer_id,
                        referred_user_id=referred_user_id,
                        referral_code=code,
                        status=ReferralStatus.PENDING.value,
                        referral_date=now,
                        earnings_total=Decimal("0"),
                        earnings_this_month=Decimal("0"),
                        earnings_last_month=Decimal("0"),
                        tier=ReferralTier.BRONZE.value,
                        commission_percentage=commission_rate(ReferralTier.BRONZE),
                        auto_share_total=Decimal("0"),
                        auto_share_percentage=DEFAULT_AUTO_SHARE_PERCENTAGE,
                    )
            except IntegrityError as e:
                if not _is_code_conflict(e):
                    raise
                logger.warning(
                    "Referral code collision, retrying",
                    extra={"referrer_id": referrer_id, "attempt": attempt},
                )

        logger.error(
            "Could not allocate a unique referral code",
            extra={
                "referrer_id": referrer_id,
                "attempts": REFERRAL_CODE_MAX_ATTEMPTS,
            },
        )
        return None

    async def activate_referral(self, referral_id: str) -> ReferralRecord | None:
        """
        Mark a pending referral verified and credit the signup bonus.

        The pending -> verified transition is a conditional update, so the
        bonus is credited at most once however often this is called.

        Args:
            referral_id: Referral ID

        Returns:
            Referral after activation (unchanged if it was not pending),
            or None if missing or the activation failed
        """
        try:
            referral = await self.referral_repo.transition_status(
                referral_id,
                [ReferralStatus.PENDING.value],
                ReferralStatus.VERIFIED.value,
                verification_date=self.clock(),
            )
            if referral is None:
                return await self._current_record(referral_id)

            applied = await self.earnings_manager.apply_earning(
                referral.referrer_id,
                settings.referral_signup_bonus,
                SIGNUP_BONUS_REASON,
                FLAT_RATE,
                referral_id=referral.id,
            )
            await self.session.commit()
            record = to_referral_record(applied.referral)
        except MUST_LOG as e:
            await self.session.rollback()
            logger.opt(exception=e).error(
                f"Failed to activate referral {referral_id}: {e}"
            )
            return None

        logger.info(
            "Referral activated",
            extra={
                "referral_id": referral_id,
                "referrer_id": record.referrer_id,
                "signup_bonus": str(settings.referral_signup_bonus),
            },
        )

        await self._publish(record)
        return record

    async def _current_record(self, referral_id: str) -> ReferralRecord | None:
        """Record for a referral the last conditional update skipped."""
        existing = await self.referral_repo.get_by_id(referral_id)
        if existing is None:
            logger.warning(
                "Referral not found",
                extra={"referral_id": referral_id},
            )
            return None

        logger.debug(
            "Referral already past pending, nothing to activate",
            extra={"referral_id": referral_id, "status": existing.status},
        )
        return to_referral_record(existing)

    async def verify_referral_code(self, code: str) -> ReferralRecord | None:
        """
        Look up a verified referral by code.

        Returns:
            Referral, or None if no verified referral has this code
        """
        try:
            referral = await self.referral_repo.get_by_code(
                code, status=ReferralStatus.VERIFIED.value
            )
            return to_referral_record(referral)
        except (SQLAlchemyError, MalformedRowError) as e:
            logger.opt(exception=e).error(
                f"Failed to verify referral code {code}: {e}"
            )
            return None

    async def get_referral(self, referral_id: str) -> ReferralRecord | None:
        """Get a referral by ID."""
        try:
            return to_referral_record(
                await self.referral_repo.get_by_id(referral_id)
            )
        except (SQLAlchemyError, MalformedRowError) as e:
            logger.opt(exception=e).error(
                f"Failed to load referral {referral_id}: {e}"
            )
            return None

    async def get_referrals_list(
        self,
        user_id: str,
        limit: int = 20,
        offset: int = 0,
        status: str | None = None,
        tier: str | None = None,
    ) -> list[ReferralRecord]:
        """
        Get a referrer's referrals, newest first.

        Args:
            user_id: Referrer user ID
            limit: Page size
            offset: Rows to skip
            status: Optional status filter
            tier: Optional tier filter

        Returns:
            List of referrals (empty on failure)
        """
        try:
            rows = await self.referral_repo.get_by_referrer(
                user_id, limit=limit, offset=offset, status=status, tier=tier
            )
            return [to_referral_record(row) for row in rows]
        except (SQLAlchemyError, MalformedRowError) as e:
            logger.opt(exception=e).error(
                f"Failed to list referrals for {user_id}: {e}"
            )
            return []

    async def set_referral_status(
        self, referral_id: str, status: str
    ) -> ReferralRecord | None:
        """
        Apply an externally decided status change.

        Only verified, active or inactive referrals can be moved, and only
        to active or inactive.

        Returns:
            Updated referral, or None if the change was rejected or failed
        """
        try:
            target = self._policy_target(status)
            referral = await self.referral_repo.transition_status(
                referral_id, POLICY_SOURCE_STATUSES, target
            )
            if referral is None:
                await self._raise_rejected_transition(referral_id, target)
            await self.session.commit()
            record = to_referral_record(referral)
        except InvalidStatusTransitionError as e:
            await self.session.rollback()
            logger.warning(f"Rejected referral status change: {e}")
            return None
        except (SQLAlchemyError, MalformedRowError) as e:
            await self.session.rollback()
            logger.opt(exception=e).error(
                f"Failed to set status of referral {referral_id}: {e}"
            )
            return None

        logger.info(
            "Referral status changed",
            extra={"referral_id": referral_id, "status": target},
        )

        await self._publish(record)
        return record

    @staticmethod
    def _policy_target(status: str) -> str:
        if status not in POLICY_TARGET_STATUSES:
            raise InvalidStatusTransitionError(
                f"status {status!r} cannot be set by policy"
            )
        return status

    async def _raise_rejected_transition(
        self, referral_id: str, target: str
    ) -> None:
        existing = await self.referral_repo.get_by_id(referral_id)
        if existing is None:
            raise InvalidStatusTransitionError(
                f"referral {referral_id} does not exist"
            )
        raise InvalidStatusTransitionError(
            f"referral {referral_id} cannot move from "
            f"{existing.status} to {target}"
        )

    async def mark_first_purchase(
        self, referral_id: str, purchased_at: datetime | None = None
    ) -> ReferralRecord | None:
        """
        Record the referred user's first purchase.

        Later calls leave the stored date unchanged.

        Returns:
            Referral, or None if missing or on failure
        """
        try:
            referral = await self.referral_repo.mark_first_purchase(
                referral_id, purchased_at or self.clock()
            )
            if referral is None:
                return await self.get_referral(referral_id)
            await self.session.commit()
            record = to_referral_record(referral)
        except (SQLAlchemyError, MalformedRowError) as e:
            await self.session.rollback()
            logger.opt(exception=e).error(
                f"Failed to mark first purchase for referral {referral_id}: {e}"
            )
            return None

        logger.info(
            "Referral first purchase recorded",
            extra={"referral_id": referral_id},
        )

        await self._publish(record)
        return record

    async def set_auto_share_percentage(
        self, referral_id: str, percentage: Decimal | float | int
    ) -> ReferralRecord | None:
        """
        Change the share of the referred user's earnings credited upstream.

        Args:
            referral_id: Referral ID
            percentage: New percentage, 0 to 1 inclusive (0.5 = 0.5%)

        Returns:
            Updated referral, or None if rejected, missing or on failure
        """
        value = to_decimal(percentage)
        if value is None or not Decimal("0") <= value <= Decimal("1"):
            logger.warning(
                "Rejected out-of-range auto-share percentage",
                extra={"referral_id": referral_id, "percentage": str(percentage)},
            )
            return None

        try:
            referral = await self.referral_repo.set_auto_share_percentage(
                referral_id, value
            )
            if referral is None:
                logger.warning(
                    "Referral not found",
                    extra={"referral_id": referral_id},
                )
                return None
            await self.session.commit()
            record = to_referral_record(referral)
        except (SQLAlchemyError, MalformedRowError) as e:
            await self.session.rollback()
            logger.opt(exception=e).error(
                f"Failed to set auto-share percentage for {referral_id}: {e}"
            )
            return None

        await self._publish(record)
        return record

    def subscribe_referral_changes(
        self, user_id: str, callback: Callback
    ) -> Unsubscribe:
        """
        Subscribe to changes of a referrer's referrals.

        Without a notifier nothing is ever delivered and a no-op
        unsubscribe is returned.
        """
        if self.notifier is None:
            logger.warning(
                "Referral subscription requested without a change notifier",
                extra={"user_id": user_id},
            )
            return lambda: None
        return self.notifier.subscribe(REFERRAL_CHANNEL, user_id, callback)

    async def _publish(self, record: ReferralRecord) -> None:
        if self.notifier is not None:
            await self.notifier.publish(REFERRAL_CHANNEL, record.referrer_id, record)
