"""
Trust score service.

Persists score transitions: one TrustHistory row plus the summary upsert,
committed together. A retried update inside the same idempotency bucket
returns the score already recorded instead of writing a duplicate row.
"""

import hashlib
from collections.abc import Callable
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_engine.config.constants import TRUST_IDEMPOTENCY_BUCKET_SECONDS
from rewards_engine.config.settings import settings
from rewards_engine.repositories.trust_history_repository import (
    TrustHistoryRepository,
)
from rewards_engine.repositories.user_rewards_summary_repository import (
    UserRewardsSummaryRepository,
)
from rewards_engine.schemas.mapping import to_trust_history_entry
from rewards_engine.schemas.trust import TrustHistoryEntry
from rewards_engine.services.notification.change_notifier import (
    TRUST_CHANNEL,
    Callback,
    ChangeNotifier,
    Unsubscribe,
)
from rewards_engine.services.trust.score_calculator import TrustScoreCalculator
from rewards_engine.utils.datetime_utils import utc_now
from rewards_engine.utils.exceptions import MalformedRowError


def idempotency_key(
    user_id: str,
    reason: str,
    at: datetime,
    bucket_seconds: int = TRUST_IDEMPOTENCY_BUCKET_SECONDS,
) -> str:
    """
    Key identifying one logical score update.

    Calls for the same user and reason within one time bucket share a key.
    """
    bucket = int(at.timestamp()) // bucket_seconds
    raw = f"{user_id}|{reason}|{bucket}"
    return hashlib.sha256(raw.encode()).hexdigest()


def change_percentage(old_score: int, new_score: int) -> Decimal:
    """Relative change in percent (0 when the old score is 0)."""
    if old_score == 0:
        return Decimal("0")
    pct = Decimal(new_score - old_score) / Decimal(old_score) * 100
    return pct.quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)


class TrustScoreService:
    """Updates, reads and streams trust scores."""

    def __init__(
        self,
        session: AsyncSession,
        notifier: ChangeNotifier | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize trust score service.

        Args:
            session: Async database session
            notifier: Optional change notifier for the trust channel
            clock: Source of "now"
        """
        self.session = session
        self.notifier = notifier
        self.clock = clock
        self.calculator = TrustScoreCalculator(session, clock=clock)
        self.history_repo = TrustHistoryRepository(session)
        self.summary_repo = UserRewardsSummaryRepository(session)

    async def update_trust_score(
        self,
        user_id: str,
        reason: str,
        factor_type: str = "manual",
        metadata: dict[str, Any] | None = None,
    ) -> int | None:
        """
        Recompute and persist a user's trust score.

        Args:
            user_id: User ID
            reason: Why the score is being recomputed
            factor_type: Category of the triggering event
            metadata: Extra audit data stored with the history row

        Returns:
            New score, or None if the user has no profile or the update
            was not applied
        """
        calculation = await self.calculator.calculate_trust_score(user_id)
        if calculation is None:
            return None

        new_score = calculation.final_score
        key = idempotency_key(user_id, reason, self.clock())

        try:
            stored = await self.summary_repo.get_trust_score(user_id)
            old_score = stored if stored is not None else settings.trust_default_score

            entry = await self.history_repo.create(
                user_id=user_id,
                old_score=old_score,
                new_score=new_score,
                change_amount=new_score - old_score,
                change_percentage=change_percentage(old_score, new_score),
                change_reason=reason,
                factor_type=factor_type,
                extra_data={
                    **(metadata or {}),
                    "base_score": calculation.base_score,
                    "decay_amount": calculation.decay_amount,
                    "changes": calculation.changes,
                },
                idempotency_key=key,
            )
            await self.summary_repo.upsert_trust_score(user_id, new_score)
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            return await self._replayed_score(user_id, key)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.opt(exception=e).error(
                f"Database error updating trust score for user {user_id}: {e}"
            )
            return None

        logger.info(
            "Trust score updated",
            extra={
                "user_id": user_id,
                "old_score": old_score,
                "new_score": new_score,
                "reason": reason,
                "factor_type": factor_type,
            },
        )

        await self._publish(entry)
        return new_score

    async def _replayed_score(self, user_id: str, key: str) -> int | None:
        """Score recorded by an earlier call with the same idempotency key."""
        try:
            existing = await self.history_repo.get_by_idempotency_key(key)
        except SQLAlchemyError as e:
            logger.opt(exception=e).error(
                f"Database error reading replayed trust update for user {user_id}: {e}"
            )
            return None

        if existing is None:
            logger.error(
                "Trust score update conflicted without a recorded entry",
                extra={"user_id": user_id},
            )
            return None

        logger.debug(
            "Duplicate trust score update ignored",
            extra={"user_id": user_id, "new_score": existing.new_score},
        )
        return existing.new_score

    async def _publish(self, entry: Any) -> None:
        """Push the committed history row to trust subscribers."""
        if self.notifier is None:
            return
        try:
            dto = to_trust_history_entry(entry)
        except MalformedRowError as e:
            logger.warning(f"Not publishing malformed trust history row: {e}")
            return
        await self.notifier.publish(TRUST_CHANNEL, entry.user_id, dto)

    async def get_current_trust_score(self, user_id: str) -> int | None:
        """
        Stored trust score.

        Returns:
            Score, or None if the user has no summary row or the store failed
        """
        try:
            return await self.summary_repo.get_trust_score(user_id)
        except SQLAlchemyError as e:
            logger.opt(exception=e).error(
                f"Database error reading trust score for user {user_id}: {e}"
            )
            return None

    async def get_trust_history(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> list[TrustHistoryEntry]:
        """
        Get a user's trust history, newest first.

        Returns:
            List of entries (empty on store failure)
        """
        try:
            rows = await self.history_repo.get_for_user(
                user_id, limit=limit, offset=offset
            )
            return [to_trust_history_entry(row) for row in rows]
        except (SQLAlchemyError, MalformedRowError) as e:
            logger.opt(exception=e).error(
                f"Error fetching trust history for user {user_id}: {e}"
            )
            return []

    def subscribe_trust_score_changes(
        self, user_id: str, callback: Callback
    ) -> Unsubscribe:
        """
        Subscribe to new history rows for a user.

        Without a notifier nothing is ever delivered and a no-op
        unsubscribe is returned.
        """
        if self.notifier is None:
            logger.warning(
                "Trust subscription requested without a change notifier",
                extra={"user_id": user_id},
            )
            return lambda: None
        return self.notifier.subscribe(TRUST_CHANNEL, user_id, callback)
