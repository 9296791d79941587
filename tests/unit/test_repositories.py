"""
Tests for repository SQL.

Statements are captured from the mocked session and compiled for
PostgreSQL; no database is needed.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from rewards_engine.repositories.referral_tracking_repository import (
    ReferralTrackingRepository,
)
from rewards_engine.repositories.user_daily_stats_repository import (
    UserDailyStatsRepository,
)
from rewards_engine.repositories.user_rewards_summary_repository import (
    UserRewardsSummaryRepository,
)


def compiled(mock_session) -> str:
    """SQL text of the last executed statement."""
    stmt = mock_session.execute.await_args.args[0]
    return str(stmt.compile(dialect=postgresql.dialect()))


@pytest.fixture
def result():
    res = MagicMock()
    res.scalar_one_or_none.return_value = None
    res.rowcount = 1
    return res


class TestReferralTrackingRepository:
    """Test referral statements."""

    @pytest.mark.asyncio
    async def test_increment_is_single_atomic_update(self, mock_session, result):
        """Earnings are incremented in SQL, not read-modify-write."""
        mock_session.execute.return_value = result
        repo = ReferralTrackingRepository(mock_session)

        await repo.increment_earnings("r1", Decimal("50"))

        sql = compiled(mock_session)
        assert sql.startswith("UPDATE referral_tracking")
        assert "earnings_total=(referral_tracking.earnings_total +" in sql
        assert "earnings_this_month=(referral_tracking.earnings_this_month +" in sql
        assert "RETURNING" in sql

    @pytest.mark.asyncio
    async def test_transition_is_conditional(self, mock_session, result):
        """Status transitions only touch rows in the expected states."""
        mock_session.execute.return_value = result
        repo = ReferralTrackingRepository(mock_session)

        assert await repo.transition_status("r1", ["pending"], "verified") is None

        sql = compiled(mock_session)
        assert "referral_tracking.status IN" in sql

    @pytest.mark.asyncio
    async def test_upgrade_tier_only_from_lower_tiers(self, mock_session, result):
        """Tier upgrades are guarded by the current tier."""
        mock_session.execute.return_value = result
        repo = ReferralTrackingRepository(mock_session)

        assert await repo.upgrade_tier("r1", "silver", Decimal("0.075"), ["bronze"])

        assert "referral_tracking.tier IN" in compiled(mock_session)

    @pytest.mark.asyncio
    async def test_upgrade_to_lowest_tier_is_noop(self, mock_session):
        """Nothing is lower than bronze."""
        repo = ReferralTrackingRepository(mock_session)

        assert await repo.upgrade_tier("r1", "bronze", Decimal("0.05"), []) is False
        mock_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rollover_touches_all_rows(self, mock_session, result):
        """Rollover has no WHERE clause."""
        result.rowcount = 12
        mock_session.execute.return_value = result
        repo = ReferralTrackingRepository(mock_session)

        assert await repo.rollover_monthly_earnings() == 12

        sql = compiled(mock_session)
        assert "earnings_last_month=referral_tracking.earnings_this_month" in sql
        assert "WHERE" not in sql

    @pytest.mark.asyncio
    async def test_first_purchase_set_once(self, mock_session, result):
        """Only rows without a first purchase are updated."""
        mock_session.execute.return_value = result
        repo = ReferralTrackingRepository(mock_session)

        await repo.mark_first_purchase("r1", None)

        assert "first_purchase_date IS NULL" in compiled(mock_session)


class TestOtherRepositories:
    """Test summary and daily stats statements."""

    @pytest.mark.asyncio
    async def test_trust_score_upsert(self, mock_session):
        """Summary writes are INSERT ... ON CONFLICT."""
        repo = UserRewardsSummaryRepository(mock_session)

        await repo.upsert_trust_score("u1", 66)

        sql = compiled(mock_session)
        assert sql.startswith("INSERT INTO user_rewards_summary")
        assert "ON CONFLICT (user_id) DO UPDATE" in sql

    @pytest.mark.asyncio
    async def test_recent_dates_newest_first(self, mock_session):
        """Daily stats dates come back newest first."""
        res = MagicMock()
        res.scalars.return_value.all.return_value = [date(2026, 3, 15)]
        mock_session.execute.return_value = res
        repo = UserDailyStatsRepository(mock_session)

        dates = await repo.get_recent_dates("u1", 90)

        assert dates == [date(2026, 3, 15)]
        assert "ORDER BY user_daily_stats.stats_date DESC" in compiled(mock_session)
