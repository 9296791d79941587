"""
Trust score formulas.

Pure functions turning raw behavioural counts into 0-100 factors and
combining factors into a bounded score:

    base = engagement*0.4 + consistency*0.2 + validation*0.2 + profile*0.1
           - min(spam*5, 30) + age_bonus            (clamped to 0..100)
    final = round(clamp(base - decay, 0, 100))

Each factor is piecewise-linear so that a handful of outliers cannot
dominate the score.
"""

import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any

from rewards_engine.config.constants import (
    CONSISTENCY_WEIGHT,
    DECAY_GRACE_DAYS,
    DECAY_MAX,
    ENGAGEMENT_WEIGHT,
    ESTABLISHED_ACCOUNT_BONUS,
    ESTABLISHED_ACCOUNT_DAYS,
    NEW_ACCOUNT_BONUS,
    NEW_ACCOUNT_DAYS,
    PROFILE_FIELDS,
    PROFILE_VERIFIED_BONUS,
    PROFILE_WEIGHT,
    SPAM_PENALTY_MAX,
    SPAM_PENALTY_PER_INCIDENT,
    TRUST_SCORE_MAX,
    TRUST_SCORE_MIN,
    VALIDATION_WEIGHT,
    YOUNG_ACCOUNT_BONUS,
    YOUNG_ACCOUNT_DAYS,
)


@dataclass(frozen=True)
class TrustFactor:
    """Behavioural factors for one user (derived, never persisted)."""

    engagement_quality: float
    activity_consistency: float
    peer_validation: float
    spam_incidents: int
    profile_completeness: float
    account_age_days: int
    verified_transactions: int


@dataclass(frozen=True)
class TrustScoreCalculation:
    """Result of one score computation."""

    factors: TrustFactor
    base_score: float
    decay_amount: float
    final_score: int
    age_bonus: int = 0
    spam_penalty: int = 0
    changes: list[str] = field(default_factory=list)


def clamp(value: float, low: float = TRUST_SCORE_MIN, high: float = TRUST_SCORE_MAX) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round to nearest integer, halves away from zero for non-negatives."""
    return int(math.floor(value + 0.5))


def engagement_quality(count: int) -> float:
    """
    Score engagement received in the trailing window.

    0-9 events: 10-37 points, 10-49: 40-70, 50+: 70-100.
    """
    if count < 10:
        return 10 + count * 3
    if count < 50:
        return 40 + ((count - 10) / 40) * 30
    return 70 + min((count - 50) / 100, 1) * 30


def activity_consistency(streak: int) -> float:
    """
    Score the current daily-activity streak.

    0 days: 0, 1-3: 10-30, 4-7: 30-50, 8-30: 50-80, 31+: 80-100.
    """
    if streak <= 0:
        return 0.0
    if streak <= 3:
        return 10 + (streak / 3) * 20
    if streak <= 7:
        return 30 + ((streak - 3) / 4) * 20
    if streak <= 30:
        return 50 + ((streak - 7) / 23) * 30
    return min(80 + (streak - 30) / 100, 100)


def peer_validation(verified_referrals: int) -> float:
    """
    Score the user's verified referrals.

    0: 30 (baseline), 1-3: 30-50, 4-10: 50-80, 11+: 80-100.
    """
    n = verified_referrals
    if n <= 0:
        return 30.0
    if n <= 3:
        return 30 + (n / 3) * 20
    if n <= 10:
        return 50 + ((n - 3) / 7) * 30
    return min(80 + (n - 10) / 50, 100)


def profile_completeness(profile: Any) -> float:
    """
    Score how much of the profile is filled in.

    Each populated field of PROFILE_FIELDS is worth 100/6, verified
    profiles get a flat bonus, capped at 100.
    """
    if profile is None:
        return 0.0

    per_field = 100 / len(PROFILE_FIELDS)
    completeness = sum(
        per_field for name in PROFILE_FIELDS if getattr(profile, name, None)
    )
    if getattr(profile, "is_verified", False):
        completeness += PROFILE_VERIFIED_BONUS

    return min(completeness, 100.0)


def current_streak(activity_dates: list[date], today: date) -> int:
    """
    Length of the contiguous daily streak ending today.

    Args:
        activity_dates: Distinct activity dates, newest first
        today: Reference day

    Returns:
        Number of consecutive days (0 if no activity today)
    """
    streak = 0
    for offset, day in enumerate(activity_dates):
        if day == today - timedelta(days=offset):
            streak += 1
        else:
            break
    return streak


def spam_penalty(spam_incidents: int) -> int:
    """Penalty for open spam incidents, capped."""
    return min(max(spam_incidents, 0) * SPAM_PENALTY_PER_INCIDENT, SPAM_PENALTY_MAX)


def age_bonus(account_age_days: int) -> int:
    """Bonus for new, young and established accounts."""
    if account_age_days < NEW_ACCOUNT_DAYS:
        return NEW_ACCOUNT_BONUS
    if account_age_days < YOUNG_ACCOUNT_DAYS:
        return YOUNG_ACCOUNT_BONUS
    if account_age_days > ESTABLISHED_ACCOUNT_DAYS:
        return ESTABLISHED_ACCOUNT_BONUS
    return 0


def calculate_decay(days_since_activity: int | None) -> float:
    """
    Score reduction for inactivity.

    0-7 days: none, 8-14: 1/day, 15-30: 1.5/day, 31+: 2/day.
    Never exceeds DECAY_MAX. None (no activity ever) means a new user.
    """
    if days_since_activity is None:
        return 0.0

    d = days_since_activity
    if d <= DECAY_GRACE_DAYS:
        decay = 0.0
    elif d <= 14:
        decay = (d - 7) * 1.0
    elif d <= 30:
        decay = 7 + (d - 14) * 1.5
    else:
        decay = 7 + 16 * 1.5 + (d - 30) * 2
    return min(decay, DECAY_MAX)


def describe_changes(
    factors: TrustFactor, bonus: int, decay_amount: float
) -> list[str]:
    """Human-readable notes on what moved the score (informational only)."""
    changes: list[str] = []
    if factors.engagement_quality > 70:
        changes.append("High engagement")
    if factors.activity_consistency > 70:
        changes.append("Consistent activity")
    if factors.spam_incidents > 0:
        changes.append(f"{factors.spam_incidents} spam incidents")
    if bonus > 0:
        if factors.account_age_days < NEW_ACCOUNT_DAYS:
            label = "New"
        elif factors.account_age_days < YOUNG_ACCOUNT_DAYS:
            label = "Young"
        else:
            label = "Established"
        changes.append(f"{label} account bonus: +{bonus}")
    if decay_amount > 0:
        changes.append(f"Inactivity decay: -{decay_amount:g}")
    return changes


def compute_trust_score(
    factors: TrustFactor, decay_amount: float
) -> TrustScoreCalculation:
    """
    Combine factors and decay into a bounded score.

    Args:
        factors: Collected trust factors
        decay_amount: Inactivity decay (see calculate_decay)

    Returns:
        TrustScoreCalculation with base score clamped before decay
    """
    base = (
        factors.engagement_quality * ENGAGEMENT_WEIGHT
        + factors.activity_consistency * CONSISTENCY_WEIGHT
        + factors.peer_validation * VALIDATION_WEIGHT
        + factors.profile_completeness * PROFILE_WEIGHT
    )

    penalty = spam_penalty(factors.spam_incidents)
    base -= penalty

    bonus = age_bonus(factors.account_age_days)
    base += bonus

    base = clamp(base)
    final = round_half_up(clamp(base - decay_amount))

    return TrustScoreCalculation(
        factors=factors,
        base_score=base,
        decay_amount=decay_amount,
        final_score=final,
        age_bonus=bonus,
        spam_penalty=penalty,
        changes=describe_changes(factors, bonus, decay_amount),
    )
