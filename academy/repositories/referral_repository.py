"""
Referral repository.

Data access layer for Referral model.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from academy.models.referral import Referral
from academy.repositories.base import BaseRepository


class ReferralRepository(BaseRepository[Referral]):
    """Referral repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral repository."""
        super().__init__(Referral, session)

    async def get_by_referred(self, referred_id: int) -> Referral | None:
        """The link through which a user was referred."""
        return await self.get_by(referred_id=referred_id)

    async def get_pair(self, referrer_id: int, referred_id: int) -> Referral | None:
        """Get referral by both sides."""
        return await self.get_by(referrer_id=referrer_id, referred_id=referred_id)
