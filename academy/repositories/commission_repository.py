"""
Commission repository.

Data access layer for Commission model: batch selection and payout
bookkeeping.
"""

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.models.commission import Commission
from academy.models.enums import CommissionStatus, CommissionType
from academy.repositories.base import BaseRepository


class CommissionRepository(BaseRepository[Commission]):
    """Commission repository with payout queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission repository."""
        super().__init__(Commission, session)

    async def find_unbatched_pending(
        self,
        min_amount: Decimal,
        limit: int,
        commission_ids: Sequence[int] | None = None,
        commission_types: Sequence[str] | None = None,
        exclude_types: Sequence[str] | None = None,
    ) -> list[Commission]:
        """
        Pending commissions not yet in a batch, oldest first.

        Args:
            min_amount: Minimum commission amount
            limit: Max rows
            commission_ids: Restrict to these ids
            commission_types: Only these types
            exclude_types: Skip these types
        """
        stmt = select(Commission).where(
            Commission.status == CommissionStatus.PENDING,
            Commission.payout_batch_id.is_(None),
            Commission.amount >= min_amount,
        )
        if commission_ids:
            stmt = stmt.where(Commission.id.in_(commission_ids))
        if commission_types:
            stmt = stmt.where(Commission.commission_type.in_(commission_types))
        if exclude_types:
            stmt = stmt.where(Commission.commission_type.not_in(exclude_types))
        stmt = stmt.order_by(Commission.created_at).limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_for_update(self, commission_id: int) -> Commission | None:
        """
        Load a commission with a row lock.

        Reloads the row even when it is already in the session, so the
        status seen by the caller is the one the lock protects.
        """
        stmt = (
            select(Commission)
            .where(Commission.id == commission_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def assign_to_batch(
        self, commission_ids: Sequence[int], batch_id: int
    ) -> int:
        """Stamp payout_batch_id on commissions."""
        return await self.update_ids(commission_ids, payout_batch_id=batch_id)

    async def find_pending_in_batch(self, batch_id: int) -> list[Commission]:
        """Pending commissions attached to a batch."""
        stmt = (
            select(Commission)
            .where(
                Commission.payout_batch_id == batch_id,
                Commission.status == CommissionStatus.PENDING,
            )
            .order_by(Commission.referrer_id, Commission.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_for_stripe_payout(
        self,
        previous_month_start: datetime,
        current_month_start: datetime,
        commission_ids: Sequence[int] | None = None,
    ) -> list[Commission]:
        """
        Commissions due for a Stripe bulk payout.

        Explicit ids win. Otherwise monthly residuals plus direct bonuses
        created last month, pending or failed.
        """
        payable = Commission.status.in_(
            [CommissionStatus.PENDING, CommissionStatus.FAILED]
        )
        if commission_ids:
            stmt = select(Commission).where(
                Commission.id.in_(commission_ids), payable
            )
        else:
            stmt = select(Commission).where(
                payable,
                or_(
                    Commission.commission_type == CommissionType.RESIDUAL_MONTHLY,
                    and_(
                        Commission.commission_type == CommissionType.DIRECT_BONUS,
                        Commission.created_at >= previous_month_start,
                        Commission.created_at < current_month_start,
                    ),
                ),
            )
        stmt = stmt.order_by(Commission.created_at)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def mark_failed(
        self, commission: Commission, error: str, processed_at: datetime
    ) -> None:
        """Record a failed payout attempt."""
        commission.status = CommissionStatus.FAILED
        commission.error_message = error
        commission.processed_at = processed_at
        commission.retry_count = (commission.retry_count or 0) + 1
        await self.session.flush()

    async def record_failure(
        self, commission: Commission, error: str, processed_at: datetime
    ) -> None:
        """Record a failed attempt but leave the commission payable."""
        commission.error_message = error
        commission.processed_at = processed_at
        commission.retry_count = (commission.retry_count or 0) + 1
        await self.session.flush()
