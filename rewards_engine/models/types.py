"""
Standard type definitions for database models.

Provides consistent types for monetary and rate fields across all models.
"""

from sqlalchemy import DECIMAL, String

# Standard money type for amounts, balances, commissions
# Precision: 18 digits total, 8 after decimal point
# Range: up to 9,999,999,999.99999999
MoneyType = DECIMAL(18, 8)

# Rate type for commission and auto-share percentages
# Precision: 10 digits total, 4 after decimal point
# Suitable for: 0.0500 (5%), 0.0750 (7.5%), 0.5000 (auto-share 0.5%)
RateType = DECIMAL(10, 4)

# Score change percentages can exceed 100 (e.g. 10 -> 60 is +500%)
PercentType = DECIMAL(12, 4)

# UUID identifiers stored as canonical strings
IdType = String(36)
