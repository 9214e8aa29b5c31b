"""
Payout batch repository.

Status transitions are single conditional UPDATEs so two admins (or an
admin and the cron) cannot move the same batch twice.
"""

from typing import Any

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from academy.models.payout_batch import PayoutBatch
from academy.repositories.base import BaseRepository


class PayoutBatchRepository(BaseRepository[PayoutBatch]):
    """Payout batch repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize payout batch repository."""
        super().__init__(PayoutBatch, session)

    async def transition(
        self,
        batch_id: int,
        from_status: str,
        to_status: str,
        **values: Any,
    ) -> PayoutBatch | None:
        """
        Move a batch between statuses atomically.

        Args:
            batch_id: Batch ID
            from_status: Status the batch must currently have
            to_status: New status
            **values: Extra columns to set

        Returns:
            Updated batch, or None when the batch is missing or in another status
        """
        stmt = (
            update(PayoutBatch)
            .where(PayoutBatch.id == batch_id, PayoutBatch.status == from_status)
            .values(status=to_status, **values)
            .returning(PayoutBatch)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        batch = result.scalar_one_or_none()
        if batch is not None:
            await self.session.refresh(batch)
        return batch
