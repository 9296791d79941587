"""
SpamDetection model (read-only for this engine).
"""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from rewards_engine.models.base import Base
from rewards_engine.models.types import IdType


class SpamDetection(Base):
    """Spam report against a user."""

    __tablename__ = "spam_detection"
    __table_args__ = (
        Index("idx_spam_detection_user_severity", "user_id", "severity"),
    )

    id: Mapped[str] = mapped_column(
        IdType, primary_key=True, default=lambda: str(uuid4())
    )
    user_id: Mapped[str] = mapped_column(IdType, nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
