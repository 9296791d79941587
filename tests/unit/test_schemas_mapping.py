"""
Tests for row -> DTO mapping.
"""

from decimal import Decimal

import pytest

from rewards_engine.models.enums import ReferralStatus, ReferralTier
from rewards_engine.models.trust_history import TrustHistory
from rewards_engine.schemas.mapping import to_referral_record, to_trust_history_entry
from rewards_engine.schemas.referral import ReferralStats
from rewards_engine.utils.exceptions import MalformedRowError


def make_history(fixed_now, **overrides) -> TrustHistory:
    data = {
        "id": "h-1",
        "user_id": "u1",
        "old_score": 50,
        "new_score": 66,
        "change_amount": 16,
        "change_percentage": Decimal("32"),
        "change_reason": "daily recalculation",
        "factor_type": "manual",
        "extra_data": {"base_score": 66.0},
        "idempotency_key": "k" * 64,
        "created_at": fixed_now,
    }
    data.update(overrides)
    return TrustHistory(**data)


class TestReferralRecordMapping:
    """Test referral row mapping."""

    def test_maps_valid_row(self, make_referral):
        """All fields are carried over with typed enums."""
        record = to_referral_record(
            make_referral(status="verified", tier="silver",
                          commission_percentage=Decimal("0.075"))
        )

        assert record.status == ReferralStatus.VERIFIED
        assert record.tier == ReferralTier.SILVER
        assert record.commission_percentage == Decimal("0.075")
        assert record.earnings_total == Decimal("0")

    def test_none_is_not_found(self):
        """Missing row maps to None."""
        assert to_referral_record(None) is None

    def test_month_above_total_is_malformed(self, make_referral):
        """Monthly earnings larger than lifetime earnings are rejected."""
        row = make_referral(
            earnings_total=Decimal("10"), earnings_this_month=Decimal("20")
        )

        with pytest.raises(MalformedRowError) as exc_info:
            to_referral_record(row)

        assert exc_info.value.table == "referral_tracking"
        assert exc_info.value.row_id == "ref-1"

    def test_unknown_status_is_malformed(self, make_referral):
        """Status outside the lifecycle is rejected."""
        with pytest.raises(MalformedRowError):
            to_referral_record(make_referral(status="deleted"))

    def test_record_is_frozen(self, make_referral):
        """DTOs are immutable."""
        record = to_referral_record(make_referral())

        with pytest.raises(Exception):
            record.status = ReferralStatus.ACTIVE


class TestTrustHistoryMapping:
    """Test trust history row mapping."""

    def test_maps_metadata_column(self, fixed_now):
        """extra_data is exposed as metadata."""
        entry = to_trust_history_entry(make_history(fixed_now))

        assert entry.new_score == 66
        assert entry.metadata == {"base_score": 66.0}

    def test_score_out_of_range_is_malformed(self, fixed_now):
        """Scores above 100 are rejected."""
        with pytest.raises(MalformedRowError):
            to_trust_history_entry(make_history(fixed_now, new_score=150))

    def test_none_is_not_found(self):
        """Missing row maps to None."""
        assert to_trust_history_entry(None) is None


class TestReferralStatsDefaults:
    """Test default stats."""

    def test_defaults(self):
        """Empty stats use bronze and 5%."""
        stats = ReferralStats()

        assert stats.total_referrals == 0
        assert stats.avg_commission_percentage == Decimal("5")
        assert stats.referral_tier == ReferralTier.BRONZE
        assert stats.by_status == {}
