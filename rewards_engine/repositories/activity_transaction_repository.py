"""
Activity transaction repository.

Data access layer for the append-only activity_transactions ledger.
"""

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_engine.models.activity_transaction import ActivityTransaction
from rewards_engine.models.enums import TransactionStatus
from rewards_engine.repositories.base import BaseRepository


class ActivityTransactionRepository(BaseRepository[ActivityTransaction]):
    """Repository for ledger entries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(ActivityTransaction, session)

    async def add_entry(
        self,
        user_id: str,
        activity_type: str,
        amount: Decimal,
        description: str,
        category: str | None = None,
        source_id: str | None = None,
        source_type: str | None = None,
        metadata: dict[str, Any] | None = None,
        status: str = TransactionStatus.COMPLETED.value,
    ) -> ActivityTransaction:
        """
        Append one immutable ledger entry.

        Args:
            user_id: Credited user
            activity_type: Entry type (e.g. referral_activity)
            amount: Amount credited
            description: Human-readable description
            category: Optional grouping
            source_id: Originating record (referral id)
            source_type: Originating record type
            metadata: Additional JSON data
            status: Entry status

        Returns:
            Created entry
        """
        return await self.create(
            user_id=user_id,
            activity_type=activity_type,
            category=category,
            amount_eloits=amount,
            description=description,
            source_id=source_id,
            source_type=source_type,
            extra_data=metadata,
            status=status,
        )

    async def count_by_types_since(
        self,
        user_id: str,
        activity_types: Sequence[str],
        since: datetime,
    ) -> int:
        """Count a user's entries of the given types created after since."""
        stmt = select(func.count(ActivityTransaction.id)).where(
            ActivityTransaction.user_id == user_id,
            ActivityTransaction.activity_type.in_(list(activity_types)),
            ActivityTransaction.created_at >= since,
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def count_completed_by_types(
        self, user_id: str, activity_types: Sequence[str]
    ) -> int:
        """Count a user's completed entries of the given types."""
        stmt = select(func.count(ActivityTransaction.id)).where(
            ActivityTransaction.user_id == user_id,
            ActivityTransaction.activity_type.in_(list(activity_types)),
            ActivityTransaction.status == TransactionStatus.COMPLETED.value,
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def get_last_activity_at(self, user_id: str) -> datetime | None:
        """Timestamp of the user's most recent entry, if any."""
        stmt = select(func.max(ActivityTransaction.created_at)).where(
            ActivityTransaction.user_id == user_id
        )
        result = await self.session.execute(stmt)
        return result.scalar()

    async def sum_by_source(
        self,
        source_type: str,
        source_id: str,
        since: datetime | None = None,
    ) -> Decimal:
        """
        Sum completed ledger amounts attributed to one source record.

        Args:
            source_type: Source type (e.g. referral)
            source_id: Source record ID
            since: Optional lower bound on created_at

        Returns:
            Sum of amount_eloits (0 if none)
        """
        stmt = select(
            func.coalesce(func.sum(ActivityTransaction.amount_eloits), Decimal("0"))
        ).where(
            ActivityTransaction.source_type == source_type,
            ActivityTransaction.source_id == source_id,
            ActivityTransaction.status == TransactionStatus.COMPLETED.value,
        )
        if since is not None:
            stmt = stmt.where(ActivityTransaction.created_at >= since)

        result = await self.session.execute(stmt)
        return result.scalar() or Decimal("0")
