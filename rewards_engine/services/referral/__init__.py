"""
Referral services package.

Contains modular services for referral processing:
- config: Tier thresholds, commission rates and display data
- tiers: Tier progression and commission arithmetic
- code_generator: Referral code generation
- referral_ledger: Referral lifecycle (track, activate, status, settings)
- earnings_manager: Commission earnings, reconciliation and rollover
- auto_share: One-hop auto-share cascade to upstream referrers
- statistics: Per-referrer stats
"""

from rewards_engine.services.referral.auto_share import AutoShareProcessor
from rewards_engine.services.referral.config import (
    TIER_COMMISSIONS,
    TIER_THRESHOLDS,
)
from rewards_engine.services.referral.earnings_manager import (
    AppliedEarning,
    ReferralEarningsManager,
)
from rewards_engine.services.referral.referral_ledger import ReferralLedger
from rewards_engine.services.referral.statistics import (
    ReferralStatisticsManager,
    build_referral_stats,
)
from rewards_engine.services.referral.tiers import (
    calculate_commission,
    get_tier_info,
    tier_for_earnings,
)


__all__ = [
    # Configuration
    "TIER_COMMISSIONS",
    "TIER_THRESHOLDS",
    # Tiers
    "calculate_commission",
    "get_tier_info",
    "tier_for_earnings",
    # Managers
    "ReferralLedger",
    "ReferralEarningsManager",
    "ReferralStatisticsManager",
    "AutoShareProcessor",
    "AppliedEarning",
    "build_referral_stats",
]
