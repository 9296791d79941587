"""
Trust score calculator.

Read-only: safe to run concurrently for any number of users.
"""

from collections.abc import Callable
from datetime import datetime

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_engine.services.trust.factor_collector import TrustFactorCollector
from rewards_engine.services.trust.scoring import (
    TrustScoreCalculation,
    calculate_decay,
    compute_trust_score,
)
from rewards_engine.utils.datetime_utils import utc_now


class TrustScoreCalculator:
    """Computes a user's trust score from collected factors."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize calculator."""
        self.session = session
        self.collector = TrustFactorCollector(session, clock=clock)

    async def calculate_decay(self, user_id: str) -> float:
        """Inactivity decay for the user (0 for users never active)."""
        days = await self.collector.days_since_last_activity(user_id)
        return calculate_decay(days)

    async def calculate_trust_score(
        self, user_id: str
    ) -> TrustScoreCalculation | None:
        """
        Calculate a user's trust score.

        Args:
            user_id: User ID

        Returns:
            TrustScoreCalculation, or None if the user has no profile or
            the store failed
        """
        try:
            factors = await self.collector.collect(user_id)
            if factors is None:
                return None

            decay_amount = await self.calculate_decay(user_id)
        except SQLAlchemyError as e:
            logger.opt(exception=e).error(
                f"Database error calculating trust score for user {user_id}: {e}"
            )
            return None

        calculation = compute_trust_score(factors, decay_amount)

        logger.debug(
            "Trust score calculated",
            extra={
                "user_id": user_id,
                "base_score": calculation.base_score,
                "decay": calculation.decay_amount,
                "final_score": calculation.final_score,
            },
        )
        return calculation
