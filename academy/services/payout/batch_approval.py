"""
Payout batch approval.
"""

from datetime import UTC, datetime

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from academy.models.enums import PayoutBatchStatus
from academy.models.payout_batch import PayoutBatch
from academy.repositories.payout_batch_repository import PayoutBatchRepository
from academy.services.audit_service import AuditEvent, AuditService
from academy.utils.exceptions import NotFoundError, PayoutBatchStateError


async def raise_transition_conflict(
    repo: PayoutBatchRepository, batch_id: int, expected: str
) -> None:
    """Explain why a conditional status update matched nothing."""
    batch = await repo.get_by_id(batch_id)
    if batch is None:
        raise NotFoundError(f"Payout batch {batch_id} not found")
    raise PayoutBatchStateError(batch_id, expected, batch.status)


class PayoutBatchApprovalService:
    """pending -> approved."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.batch_repo = PayoutBatchRepository(session)

    async def approve_batch(self, batch_id: int, admin_id: int | None) -> PayoutBatch:
        """
        Approve a pending batch.

        Raises:
            NotFoundError: No such batch
            PayoutBatchStateError: Batch is not pending
        """
        now = datetime.now(UTC)
        batch = await self.batch_repo.transition(
            batch_id,
            PayoutBatchStatus.PENDING,
            PayoutBatchStatus.APPROVED,
            approved_by=admin_id,
            approved_at=now,
        )
        if batch is None:
            await raise_transition_conflict(
                self.batch_repo, batch_id, PayoutBatchStatus.PENDING
            )

        await AuditService(self.session).log(
            AuditEvent.PAYOUT_APPROVED,
            details={
                "batch_name": batch.batch_name,
                "total_amount": str(batch.total_amount_usdc),
                "total_payouts": batch.total_payouts,
            },
            admin_id=admin_id,
            entity_type="payout_batch",
            entity_id=batch_id,
        )
        logger.info(f"Payout batch {batch.batch_name} approved by admin {admin_id}")
        return batch
