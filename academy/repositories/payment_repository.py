"""
Payment repository.

Data access layer for Payment model.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from academy.models.payment import Payment
from academy.repositories.base import BaseRepository


class PaymentRepository(BaseRepository[Payment]):
    """Payment repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize payment repository."""
        super().__init__(Payment, session)
