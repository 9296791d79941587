"""
Enumerations shared by the referral and trust models.
"""

from enum import StrEnum


class ReferralStatus(StrEnum):
    """Referral lifecycle states."""

    PENDING = "pending"
    VERIFIED = "verified"
    ACTIVE = "active"
    INACTIVE = "inactive"


class ReferralTier(StrEnum):
    """Referral earnings tiers, ordered lowest to highest."""

    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class TransactionStatus(StrEnum):
    """Ledger entry status."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class SpamSeverity(StrEnum):
    """Spam report severity."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
