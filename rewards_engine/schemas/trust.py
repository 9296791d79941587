"""
Trust DTOs.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TrustHistoryEntry(BaseModel):
    """Validated trust_history row."""

    model_config = ConfigDict(
        from_attributes=True, frozen=True, populate_by_name=True
    )

    id: str
    user_id: str
    old_score: int = Field(ge=0, le=100)
    new_score: int = Field(ge=0, le=100)
    change_amount: int
    change_percentage: Decimal
    change_reason: str
    factor_type: str
    metadata: dict[str, Any] = Field(
        default_factory=dict, validation_alias="extra_data"
    )
    created_at: datetime
