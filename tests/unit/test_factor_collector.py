"""
Tests for trust factor collection and score calculation.
"""

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from rewards_engine.services.trust.factor_collector import TrustFactorCollector
from rewards_engine.services.trust.score_calculator import TrustScoreCalculator


def make_profile(created_at, **fields):
    data = {
        "full_name": "Ada",
        "avatar_url": "https://cdn.example/ada.png",
        "bio": None,
        "location": None,
        "phone": None,
        "website": None,
        "is_verified": False,
        "created_at": created_at,
    }
    data.update(fields)
    return SimpleNamespace(**data)


@pytest.fixture
def collector(mock_session, fixed_now):
    """Collector with mocked repositories."""
    c = TrustFactorCollector(mock_session, clock=lambda: fixed_now)
    c.profile_repo = AsyncMock()
    c.profile_repo.get_by_id = AsyncMock(
        return_value=make_profile(fixed_now - timedelta(days=10))
    )
    c.activity_repo = AsyncMock()
    c.activity_repo.count_by_types_since = AsyncMock(return_value=5)
    c.activity_repo.count_completed_by_types = AsyncMock(return_value=4)
    c.activity_repo.get_last_activity_at = AsyncMock(return_value=None)
    c.daily_stats_repo = AsyncMock()
    c.daily_stats_repo.get_recent_dates = AsyncMock(
        return_value=[fixed_now.date(), fixed_now.date() - timedelta(days=1)]
    )
    c.referral_repo = AsyncMock()
    c.referral_repo.count_verified_by_referrer = AsyncMock(return_value=3)
    c.spam_repo = AsyncMock()
    c.spam_repo.count_unresolved_high_since = AsyncMock(return_value=1)
    return c


class TestTrustFactorCollector:
    """Test factor collection."""

    @pytest.mark.asyncio
    async def test_collect(self, collector, fixed_now):
        """Raw counts are scaled into factors."""
        factors = await collector.collect("u1")

        assert factors.engagement_quality == pytest.approx(25)
        assert factors.activity_consistency == pytest.approx(10 + (2 / 3) * 20)
        assert factors.peer_validation == pytest.approx(50)
        assert factors.spam_incidents == 1
        assert factors.profile_completeness == pytest.approx(100 / 3)
        assert factors.account_age_days == 10
        assert factors.verified_transactions == 4

        since = collector.spam_repo.count_unresolved_high_since.await_args.args[1]
        assert since == fixed_now - timedelta(days=30)

    @pytest.mark.asyncio
    async def test_no_profile(self, collector):
        """Users without a profile have no factors."""
        collector.profile_repo.get_by_id.return_value = None

        assert await collector.collect("ghost") is None
        collector.activity_repo.count_by_types_since.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_store_errors_propagate(self, collector):
        """Collector does not hide store errors."""
        collector.spam_repo.count_unresolved_high_since.side_effect = (
            OperationalError("SELECT", {}, Exception("down"))
        )

        with pytest.raises(OperationalError):
            await collector.collect("u1")

    @pytest.mark.asyncio
    async def test_days_since_last_activity(self, collector, fixed_now):
        """Whole days since the last ledger entry."""
        collector.activity_repo.get_last_activity_at.return_value = (
            fixed_now - timedelta(days=20, hours=5)
        )

        assert await collector.days_since_last_activity("u1") == 20

    @pytest.mark.asyncio
    async def test_never_active(self, collector):
        """No activity at all gives None."""
        assert await collector.days_since_last_activity("u1") is None


class TestTrustScoreCalculator:
    """Test score calculation orchestration."""

    @pytest.mark.asyncio
    async def test_calculate(self, mock_session, collector, fixed_now):
        """Decay from inactivity is applied to the collected factors."""
        calculator = TrustScoreCalculator(mock_session, clock=lambda: fixed_now)
        calculator.collector = collector
        collector.activity_repo.get_last_activity_at.return_value = (
            fixed_now - timedelta(days=10)
        )

        result = await calculator.calculate_trust_score("u1")

        assert result.decay_amount == pytest.approx(3)
        assert 0 <= result.final_score <= 100
        assert result.final_score == round(result.base_score - 3)

    @pytest.mark.asyncio
    async def test_new_user_has_no_decay(self, mock_session, collector, fixed_now):
        """Users never active are not decayed."""
        calculator = TrustScoreCalculator(mock_session, clock=lambda: fixed_now)
        calculator.collector = collector

        assert await calculator.calculate_decay("u1") == 0

    @pytest.mark.asyncio
    async def test_store_failure(self, mock_session, collector, fixed_now):
        """Store errors are logged and yield None."""
        calculator = TrustScoreCalculator(mock_session, clock=lambda: fixed_now)
        calculator.collector = collector
        collector.profile_repo.get_by_id.side_effect = OperationalError(
            "SELECT", {}, Exception("down")
        )

        assert await calculator.calculate_trust_score("u1") is None
