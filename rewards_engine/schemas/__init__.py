"""
Data transfer objects.

Pydantic models returned across the engine's public boundary.
"""

from rewards_engine.schemas.mapping import (
    to_referral_record,
    to_trust_history_entry,
)
from rewards_engine.schemas.referral import (
    ReferralRecord,
    ReferralStats,
    ReferralTierInfo,
)
from rewards_engine.schemas.trust import TrustHistoryEntry

__all__ = [
    "ReferralRecord",
    "ReferralStats",
    "ReferralTierInfo",
    "TrustHistoryEntry",
    "to_referral_record",
    "to_trust_history_entry",
]
