"""
Reputation & incentive engine.

Trust scoring and tiered referral commission ledger backed by PostgreSQL.
"""

__version__ = "1.0.0"
