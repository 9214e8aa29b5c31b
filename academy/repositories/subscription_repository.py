"""
Subscription repository.

Data access layer for Subscription model.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from academy.models.subscription import Subscription
from academy.repositories.base import BaseRepository


class SubscriptionRepository(BaseRepository[Subscription]):
    """Subscription repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize subscription repository."""
        super().__init__(Subscription, session)

    async def get_by_stripe_id(self, stripe_subscription_id: str) -> Subscription | None:
        """Get subscription by Stripe id."""
        return await self.get_by(stripe_subscription_id=stripe_subscription_id)
