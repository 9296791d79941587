"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from rewards_engine.models.activity_transaction import ActivityTransaction
from rewards_engine.models.base import Base
from rewards_engine.models.enums import (
    ReferralStatus,
    ReferralTier,
    SpamSeverity,
    TransactionStatus,
)

# Read-only inputs
from rewards_engine.models.profile import Profile

# Referral ledger
from rewards_engine.models.referral_tracking import ReferralTracking
from rewards_engine.models.spam_detection import SpamDetection

# Trust
from rewards_engine.models.trust_history import TrustHistory
from rewards_engine.models.user_daily_stats import UserDailyStats
from rewards_engine.models.user_rewards_summary import UserRewardsSummary

__all__ = [
    # Base
    "Base",
    # Enums
    "ReferralStatus",
    "ReferralTier",
    "SpamSeverity",
    "TransactionStatus",
    # Referral ledger
    "ReferralTracking",
    "ActivityTransaction",
    # Trust
    "TrustHistory",
    "UserRewardsSummary",
    # Read-only inputs
    "Profile",
    "SpamDetection",
    "UserDailyStats",
]
