"""
Tests for tier progression and commission arithmetic.
"""

from decimal import Decimal

import pytest

from rewards_engine.models.enums import ReferralTier
from rewards_engine.services.referral.tiers import (
    calculate_commission,
    commission_rate,
    get_tier_info,
    higher_tier,
    tier_for_earnings,
    tier_rank,
    tiers_below,
)


class TestTierForEarnings:
    """Test earnings to tier mapping."""

    @pytest.mark.parametrize(
        "earnings,tier",
        [
            (Decimal("0"), ReferralTier.BRONZE),
            (Decimal("4999.99999999"), ReferralTier.BRONZE),
            (Decimal("5000"), ReferralTier.SILVER),
            (Decimal("24999"), ReferralTier.SILVER),
            (Decimal("25000"), ReferralTier.GOLD),
            (Decimal("99999.99"), ReferralTier.GOLD),
            (Decimal("100000"), ReferralTier.PLATINUM),
            (Decimal("10000000"), ReferralTier.PLATINUM),
        ],
    )
    def test_thresholds(self, earnings, tier):
        """Thresholds are inclusive lower bounds."""
        assert tier_for_earnings(earnings) == tier

    def test_tier_is_non_decreasing_in_earnings(self):
        """Higher earnings never map to a lower tier."""
        ranks = [
            tier_rank(tier_for_earnings(Decimal(amount)))
            for amount in range(0, 150000, 500)
        ]
        assert ranks == sorted(ranks)


class TestCommissionRates:
    """Test tier commission rates."""

    @pytest.mark.parametrize(
        "tier,rate",
        [
            ("bronze", Decimal("0.05")),
            ("silver", Decimal("0.075")),
            ("gold", Decimal("0.10")),
            ("platinum", Decimal("0.15")),
        ],
    )
    def test_commission_rate(self, tier, rate):
        """Each tier fixes its rate."""
        assert commission_rate(tier) == rate

    def test_calculate_commission(self):
        """1000 at 5% is 50."""
        assert calculate_commission(Decimal("1000"), Decimal("0.05")) == Decimal("50")

    def test_calculate_commission_quantized(self):
        """Commissions are rounded to 8 decimal places."""
        result = calculate_commission(Decimal("0.333333333"), Decimal("0.075"))

        assert result == Decimal("0.02500000")
        assert result.as_tuple().exponent == -8

    def test_flat_bonus_rate(self):
        """A rate of 1 credits the full amount."""
        assert calculate_commission(Decimal("500"), Decimal("1")) == Decimal("500")


class TestTierOrdering:
    """Test tier ordering helpers."""

    def test_tiers_below(self):
        """Only strictly lower tiers are returned."""
        assert tiers_below("bronze") == []
        assert tiers_below("gold") == ["bronze", "silver"]
        assert tiers_below(ReferralTier.PLATINUM) == ["bronze", "silver", "gold"]

    def test_higher_tier(self):
        """The higher tier wins regardless of argument order."""
        assert higher_tier("silver", "gold") == ReferralTier.GOLD
        assert higher_tier("platinum", "bronze") == ReferralTier.PLATINUM
        assert higher_tier("silver", "silver") == ReferralTier.SILVER

    def test_unknown_tier_rejected(self):
        """Unknown tier names raise ValueError."""
        with pytest.raises(ValueError):
            tier_rank("diamond")


class TestTierInfo:
    """Test tier display information."""

    def test_silver_info(self):
        """Silver shows 7.5% from 5000."""
        info = get_tier_info("silver")

        assert info.name == "Silver"
        assert info.tier == ReferralTier.SILVER
        assert info.commission_percentage == Decimal("7.5")
        assert info.min_earnings == Decimal("5000")
        assert info.benefits
        assert info.color

    def test_benefits_are_copied(self):
        """Callers cannot mutate the shared benefit lists."""
        info = get_tier_info("bronze")
        info.benefits.append("extra")

        assert "extra" not in get_tier_info("bronze").benefits
