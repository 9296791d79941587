"""
Exception handling utilities.

Defines the engine's exception types and categories for error handling.
Public service operations never let these escape: they log and return
None/False instead.
"""

import asyncio

from aiohttp import ClientError
from sqlalchemy.exc import SQLAlchemyError


class RewardsEngineError(Exception):
    """Base class for engine errors."""

    pass


class MalformedRowError(RewardsEngineError):
    """Raised when a stored row exists but fails DTO validation."""

    def __init__(self, table: str, row_id: object, detail: str) -> None:
        self.table = table
        self.row_id = row_id
        self.detail = detail
        super().__init__(f"Malformed {table} row {row_id}: {detail}")


class WalletUpdateError(RewardsEngineError):
    """Raised when the wallet balance endpoint rejects or times out."""

    def __init__(self, message: str, status: int | None = None) -> None:
        self.status = status
        super().__init__(message)


class InvalidStatusTransitionError(RewardsEngineError):
    """Raised when a referral status change is not allowed."""

    pass


class ReferralNotFoundError(RewardsEngineError):
    """Raised when a referral disappears in the middle of an earning."""

    pass


# Exception categories based on handling strategy

# Must log but can continue - the operation is reported as not applied
MUST_LOG = (
    SQLAlchemyError,    # Store failures (rolled back)
    ClientError,        # Wallet HTTP transport errors
    asyncio.TimeoutError,
    WalletUpdateError,
    MalformedRowError,
    ReferralNotFoundError,
)

