"""
Referral DTOs.

Explicit, validated views of referral_tracking rows and derived stats.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from rewards_engine.models.enums import ReferralStatus, ReferralTier


class ReferralRecord(BaseModel):
    """Validated referral row."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    referrer_id: str
    referred_user_id: str
    referral_code: str = Field(min_length=1)
    status: ReferralStatus
    referral_date: datetime
    verification_date: datetime | None = None
    first_purchase_date: datetime | None = None
    earnings_total: Decimal = Field(ge=0)
    earnings_this_month: Decimal = Field(ge=0)
    earnings_last_month: Decimal = Field(ge=0)
    tier: ReferralTier
    commission_percentage: Decimal = Field(ge=0, le=1)
    auto_share_total: Decimal = Field(ge=0)
    auto_share_percentage: Decimal = Field(ge=0, le=1)
    created_at: datetime
    updated_at: datetime

    @model_validator(mode='after')
    def check_month_within_total(self) -> 'ReferralRecord':
        """Monthly earnings can never exceed lifetime earnings."""
        if self.earnings_this_month > self.earnings_total:
            raise ValueError(
                'earnings_this_month exceeds earnings_total'
            )
        return self


class ReferralStats(BaseModel):
    """Rollup over all referrals of one referrer."""

    model_config = ConfigDict(frozen=True)

    total_referrals: int = 0
    active_referrals: int = 0
    verified_referrals: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    total_earnings: Decimal = Decimal("0")
    this_month_earnings: Decimal = Decimal("0")
    last_month_earnings: Decimal = Decimal("0")
    avg_commission_percentage: Decimal = Decimal("5")
    top_tier: ReferralTier = ReferralTier.BRONZE
    referral_tier: ReferralTier = ReferralTier.BRONZE
    auto_share_total: Decimal = Decimal("0")


class ReferralTierInfo(BaseModel):
    """Display information for a tier."""

    model_config = ConfigDict(frozen=True)

    name: str
    tier: ReferralTier
    commission_percentage: Decimal
    min_earnings: Decimal
    benefits: list[str]
    color: str | None = None
