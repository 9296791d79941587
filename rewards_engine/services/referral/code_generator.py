"""
Referral code generation.

Code = first 4 characters of the referrer id + base36 millisecond timestamp
+ 5 random base36 characters, upper-cased. Codes are probabilistically
unique; the unique index on referral_code is the real guarantee and callers
retry with a fresh code on conflict.
"""

import secrets
import string
import time

from rewards_engine.config.constants import (
    REFERRAL_CODE_PREFIX_LENGTH,
    REFERRAL_CODE_RANDOM_LENGTH,
)

BASE36_ALPHABET = string.digits + string.ascii_uppercase


def to_base36(value: int) -> str:
    """Encode a non-negative integer in upper-case base36."""
    if value < 0:
        raise ValueError("base36 encoding needs a non-negative integer")
    if value == 0:
        return "0"

    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_referral_code(referrer_id: str, timestamp_ms: int | None = None) -> str:
    """
    Build a new referral code for a referrer.

    Args:
        referrer_id: Referrer user ID
        timestamp_ms: Milliseconds since epoch (defaults to now)

    Returns:
        Upper-case alphanumeric code
    """
    if timestamp_ms is None:
        timestamp_ms = time.time_ns() // 1_000_000

    prefix = "".join(
        ch for ch in referrer_id if ch.isalnum()
    )[:REFERRAL_CODE_PREFIX_LENGTH].upper()
    random_part = "".join(
        secrets.choice(BASE36_ALPHABET)
        for _ in range(REFERRAL_CODE_RANDOM_LENGTH)
    )
    return f"{prefix}{to_base36(timestamp_ms)}{random_part}"
