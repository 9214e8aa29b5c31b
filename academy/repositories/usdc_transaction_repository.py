"""
USDC transaction repository.

Data access layer for UsdcTransaction model.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.models.usdc_transaction import UsdcTransaction
from academy.repositories.base import BaseRepository


class UsdcTransactionRepository(BaseRepository[UsdcTransaction]):
    """USDC transaction repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize USDC transaction repository."""
        super().__init__(UsdcTransaction, session)

    async def get_by_tx_hash(self, tx_hash: str) -> UsdcTransaction | None:
        """Get transaction by Polygon hash (case-insensitive)."""
        stmt = select(UsdcTransaction).where(
            func.lower(UsdcTransaction.polygon_tx_hash) == tx_hash.lower()
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
