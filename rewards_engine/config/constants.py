"""
Business constants.

Centralized scoring weights, thresholds and windows for the engine.
"""

from decimal import Decimal

# ========================================================================
# TRUST SCORE
# ========================================================================

TRUST_SCORE_MIN = 0
TRUST_SCORE_MAX = 100
DEFAULT_TRUST_SCORE = 50  # Assumed when a user has no summary row yet

# Factor weights (must stay in sync with product docs)
ENGAGEMENT_WEIGHT = 0.4
CONSISTENCY_WEIGHT = 0.2
VALIDATION_WEIGHT = 0.2
PROFILE_WEIGHT = 0.1

# Spam penalty
SPAM_PENALTY_PER_INCIDENT = 5
SPAM_PENALTY_MAX = 30

# Account age bonus (days -> points)
NEW_ACCOUNT_DAYS = 7
NEW_ACCOUNT_BONUS = 10
YOUNG_ACCOUNT_DAYS = 30
YOUNG_ACCOUNT_BONUS = 5
ESTABLISHED_ACCOUNT_DAYS = 365
ESTABLISHED_ACCOUNT_BONUS = 3

# Inactivity decay
DECAY_GRACE_DAYS = 7
DECAY_MAX = 30

# Factor windows
ENGAGEMENT_WINDOW_DAYS = 30
SPAM_WINDOW_DAYS = 30
STREAK_LOOKBACK_ROWS = 90

# Idempotency bucket for trust history rows (seconds)
TRUST_IDEMPOTENCY_BUCKET_SECONDS = 60

PROFILE_FIELDS = (
    "full_name",
    "avatar_url",
    "bio",
    "location",
    "phone",
    "website",
)
PROFILE_VERIFIED_BONUS = 10

ENGAGEMENT_ACTIVITY_TYPES = (
    "like_received",
    "comment_received",
    "share_received",
)
VERIFIED_TRANSACTION_TYPES = (
    "product_purchase",
    "job_completed",
    "referral_first_purchase",
)

# ========================================================================
# REFERRALS
# ========================================================================

REFERRAL_SIGNUP_BONUS = Decimal("500")
DEFAULT_AUTO_SHARE_PERCENTAGE = Decimal("0.5")  # 0.5% of referred user earnings
AUTO_SHARE_SCALE = Decimal("0.01")
REFERRAL_CODE_RANDOM_LENGTH = 5
REFERRAL_CODE_PREFIX_LENGTH = 4
REFERRAL_CODE_MAX_ATTEMPTS = 3

# Ledger entry metadata
REFERRAL_ACTIVITY_TYPE = "referral_activity"
REFERRAL_ACTIVITY_CATEGORY = "Referrals"
REFERRAL_SOURCE_TYPE = "referral"

# Money precision
MONEY_QUANT = Decimal("0.00000001")

# ========================================================================
# WALLET
# ========================================================================

WALLET_API_TIMEOUT = 10.0  # Seconds
WALLET_BALANCE_TYPE = "referral"
WALLET_BALANCE_ACTION = "add"
WALLET_BALANCE_SOURCE = "referral_commission"
