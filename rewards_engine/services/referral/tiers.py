"""
Tier progression and commission arithmetic.

Tiers only move up: a referral's tier is recomputed from its cumulative
earnings after every earning event and upgraded when a threshold is crossed.
New rates apply to future earnings only.
"""

from decimal import ROUND_HALF_UP, Decimal

from rewards_engine.config.constants import MONEY_QUANT
from rewards_engine.models.enums import ReferralTier
from rewards_engine.schemas.referral import ReferralTierInfo
from rewards_engine.services.referral.config import (
    TIER_BENEFITS,
    TIER_COLORS,
    TIER_COMMISSIONS,
    TIER_NAMES,
    TIER_ORDER,
    TIER_THRESHOLDS,
)


def tier_for_earnings(earnings_total: Decimal) -> ReferralTier:
    """
    Map cumulative earnings to a tier.

    <5000 bronze, <25000 silver, <100000 gold, otherwise platinum.
    """
    for tier in reversed(TIER_ORDER):
        if earnings_total >= TIER_THRESHOLDS[tier]:
            return tier
    return ReferralTier.BRONZE


def tier_rank(tier: str) -> int:
    """Position of tier in TIER_ORDER (bronze = 0)."""
    return TIER_ORDER.index(ReferralTier(tier))


def tiers_below(tier: str) -> list[str]:
    """Tier values strictly lower than tier."""
    return [t.value for t in TIER_ORDER[:tier_rank(tier)]]


def higher_tier(first: str, second: str) -> ReferralTier:
    """The higher of two tiers."""
    if tier_rank(first) >= tier_rank(second):
        return ReferralTier(first)
    return ReferralTier(second)


def commission_rate(tier: str) -> Decimal:
    """Commission rate fixed by a tier."""
    return TIER_COMMISSIONS[ReferralTier(tier)]


def calculate_commission(amount: Decimal, rate: Decimal) -> Decimal:
    """
    Commission for a base amount.

    Args:
        amount: Base amount
        rate: Commission rate (0.05 = 5%)

    Returns:
        amount * rate rounded to ledger precision
    """
    return (amount * rate).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def get_tier_info(tier: str) -> ReferralTierInfo:
    """Display information for a tier."""
    key = ReferralTier(tier)
    return ReferralTierInfo(
        name=TIER_NAMES[key],
        tier=key,
        commission_percentage=TIER_COMMISSIONS[key] * 100,
        min_earnings=TIER_THRESHOLDS[key],
        benefits=list(TIER_BENEFITS[key]),
        color=TIER_COLORS[key],
    )
