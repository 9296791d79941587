"""
Referral tier configuration.

Commission rate and minimum cumulative earnings for each tier.
"""

from decimal import Decimal

from rewards_engine.models.enums import ReferralTier

# Lowest to highest
TIER_ORDER = (
    ReferralTier.BRONZE,
    ReferralTier.SILVER,
    ReferralTier.GOLD,
    ReferralTier.PLATINUM,
)

TIER_COMMISSIONS = {
    ReferralTier.BRONZE: Decimal("0.05"),     # 5%
    ReferralTier.SILVER: Decimal("0.075"),    # 7.5%
    ReferralTier.GOLD: Decimal("0.10"),       # 10%
    ReferralTier.PLATINUM: Decimal("0.15"),   # 15%
}

TIER_THRESHOLDS = {
    ReferralTier.BRONZE: Decimal("0"),
    ReferralTier.SILVER: Decimal("5000"),
    ReferralTier.GOLD: Decimal("25000"),
    ReferralTier.PLATINUM: Decimal("100000"),
}

TIER_NAMES = {
    ReferralTier.BRONZE: "Bronze",
    ReferralTier.SILVER: "Silver",
    ReferralTier.GOLD: "Gold",
    ReferralTier.PLATINUM: "Platinum",
}

TIER_COLORS = {
    ReferralTier.BRONZE: "#92400E",
    ReferralTier.SILVER: "#C0C7D0",
    ReferralTier.GOLD: "#D97706",
    ReferralTier.PLATINUM: "#3B82F6",
}

TIER_BENEFITS = {
    ReferralTier.BRONZE: [
        "5% commission on referral earnings",
        "Basic referral dashboard",
        "Email support",
    ],
    ReferralTier.SILVER: [
        "7.5% commission on referral earnings",
        "Advanced referral analytics",
        "Priority email support",
        "Auto-share enabled",
    ],
    ReferralTier.GOLD: [
        "10% commission on referral earnings",
        "Custom referral materials",
        "Phone support",
        "Monthly bonus pool access",
    ],
    ReferralTier.PLATINUM: [
        "15% commission on referral earnings",
        "Dedicated account manager",
        "24/7 support",
        "Exclusive events and networking",
        "Premium marketing tools",
    ],
}
