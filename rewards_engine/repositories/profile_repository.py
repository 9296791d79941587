"""
Profile repository (read-only).
"""

from sqlalchemy.ext.asyncio import AsyncSession

from rewards_engine.models.profile import Profile
from rewards_engine.repositories.base import BaseRepository


class ProfileRepository(BaseRepository[Profile]):
    """Repository for user profiles."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Profile, session)
