"""
Row -> DTO mapping helpers.

A row that exists but does not validate raises MalformedRowError, which is
distinct from "not found" (None).
"""

from pydantic import ValidationError

from rewards_engine.models.referral_tracking import ReferralTracking
from rewards_engine.models.trust_history import TrustHistory
from rewards_engine.schemas.referral import ReferralRecord
from rewards_engine.schemas.trust import TrustHistoryEntry
from rewards_engine.utils.exceptions import MalformedRowError


def to_referral_record(row: ReferralTracking | None) -> ReferralRecord | None:
    """Map a referral_tracking row to its DTO."""
    if row is None:
        return None
    try:
        return ReferralRecord.model_validate(row)
    except ValidationError as e:
        raise MalformedRowError(
            "referral_tracking", getattr(row, "id", None), str(e)
        ) from e


def to_trust_history_entry(row: TrustHistory | None) -> TrustHistoryEntry | None:
    """Map a trust_history row to its DTO."""
    if row is None:
        return None
    try:
        return TrustHistoryEntry.model_validate(row)
    except ValidationError as e:
        raise MalformedRowError(
            "trust_history", getattr(row, "id", None), str(e)
        ) from e
