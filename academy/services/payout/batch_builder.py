"""
Payout batch creation.

Groups pending commissions per member into a batch that an admin
approves before any USDC leaves the payout wallet.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config.constants import (
    ADMIN_BATCH_COMMISSION_LIMIT,
    CRON_BATCH_COMMISSION_LIMIT,
)
from academy.config.settings import settings
from academy.models.commission import Commission
from academy.models.enums import CommissionType, PayoutBatchStatus, PayoutBatchType
from academy.models.payout_batch import PayoutBatch
from academy.repositories.commission_repository import CommissionRepository
from academy.repositories.payout_batch_repository import PayoutBatchRepository
from academy.repositories.user_repository import UserRepository
from academy.services.audit_service import AuditEvent, AuditService
from academy.services.blockchain.gas_manager import GasManager
from academy.utils.exceptions import PayoutValidationError


@dataclass
class UserPayout:
    """One member's share of a batch."""

    user_id: int
    total: Decimal = Decimal("0")
    commission_ids: list[int] = field(default_factory=list)
    wallet_address: str | None = None


def group_commissions_by_user(
    commissions: Sequence[Commission],
) -> dict[int, UserPayout]:
    """Sum payable amounts per referrer, keeping commission order."""
    grouped: dict[int, UserPayout] = {}
    for commission in commissions:
        payout = grouped.setdefault(
            commission.referrer_id, UserPayout(user_id=commission.referrer_id)
        )
        payout.total += commission.payable_amount
        payout.commission_ids.append(commission.id)
    return grouped


def make_batch_name(batch_type: str, now: datetime) -> str:
    """{type}_{YYYY-MM-DD}_{unix_ts}"""
    return f"{batch_type}_{now.strftime('%Y-%m-%d')}_{int(now.timestamp())}"


class PayoutBatchBuilder:
    """Creates pending payout batches."""

    def __init__(
        self,
        session: AsyncSession,
        gas_manager: GasManager,
        min_amount: Decimal | None = None,
    ) -> None:
        self.session = session
        self.gas_manager = gas_manager
        self.min_amount = min_amount or settings.min_payout_amount
        self.commission_repo = CommissionRepository(session)
        self.batch_repo = PayoutBatchRepository(session)
        self.user_repo = UserRepository(session)
        self.audit = AuditService(session)

    async def create_batch(
        self,
        batch_type: str,
        commission_ids: Sequence[int] | None = None,
        limit: int = ADMIN_BATCH_COMMISSION_LIMIT,
        created_by: int | None = None,
    ) -> dict[str, Any] | None:
        """
        Batch pending, unbatched commissions.

        Args:
            batch_type: One of PayoutBatchType.ALL
            commission_ids: Restrict to these commissions
            limit: Max commissions considered
            created_by: Admin user id

        Returns:
            {"batch": PayoutBatch, "payouts": [...]} or None when nothing
            is eligible

        Raises:
            PayoutValidationError: Unknown batch type
        """
        if batch_type not in PayoutBatchType.ALL:
            raise PayoutValidationError(f"Invalid batch type: {batch_type}")

        commissions = await self.commission_repo.find_unbatched_pending(
            min_amount=self.min_amount,
            limit=limit,
            commission_ids=commission_ids,
        )
        return await self.build_from(commissions, batch_type, created_by)

    async def create_scheduled_batches(
        self, limit: int = CRON_BATCH_COMMISSION_LIMIT
    ) -> list[PayoutBatch]:
        """
        Daily batching: direct bonuses and everything else go to
        separate batches.
        """
        commissions = await self.commission_repo.find_unbatched_pending(
            min_amount=self.min_amount, limit=limit
        )
        if not commissions:
            logger.info("No pending commissions to batch")
            return []

        direct_bonuses = [
            c for c in commissions if c.commission_type == CommissionType.DIRECT_BONUS
        ]
        residuals = [
            c for c in commissions if c.commission_type != CommissionType.DIRECT_BONUS
        ]

        batches = []
        for group, batch_type in (
            (direct_bonuses, PayoutBatchType.DIRECT_BONUSES),
            (residuals, PayoutBatchType.MONTHLY_RESIDUAL),
        ):
            if not group:
                continue
            created = await self.build_from(group, batch_type)
            if created is not None:
                batches.append(created["batch"])

        logger.info(
            f"Created {len(batches)} payout batches from {len(commissions)} commissions"
        )
        return batches

    async def build_from(
        self,
        commissions: Sequence[Commission],
        batch_type: str,
        created_by: int | None = None,
    ) -> dict[str, Any] | None:
        """Turn selected commissions into a pending batch."""
        if not commissions:
            logger.info(f"No pending commissions for a {batch_type} batch")
            return None

        grouped = group_commissions_by_user(commissions)
        users = await self.user_repo.find_by_ids(grouped.keys())
        wallets = {u.id: u.payout_wallet_address for u in users if u.payout_wallet_address}

        payouts: list[UserPayout] = []
        for user_id, payout in grouped.items():
            wallet = wallets.get(user_id)
            if wallet and payout.total >= self.min_amount:
                payout.wallet_address = wallet
                payouts.append(payout)

        if not payouts:
            logger.info(f"No users with valid wallets for a {batch_type} batch")
            return None

        included_ids = [cid for p in payouts for cid in p.commission_ids]
        total_amount = sum((p.total for p in payouts), Decimal("0"))
        gas = await self.gas_manager.estimate_batch_gas(len(payouts))

        now = datetime.now(UTC)
        batch = await self.batch_repo.create(
            batch_name=make_batch_name(batch_type, now),
            batch_type=batch_type,
            status=PayoutBatchStatus.PENDING,
            total_amount_usdc=total_amount,
            total_payouts=len(payouts),
            estimated_gas_matic=gas["total_pol"],
            commission_ids=included_ids,
            created_by=created_by,
        )
        await self.commission_repo.assign_to_batch(included_ids, batch.id)

        await self.audit.log(
            AuditEvent.PAYOUT_BATCH_CREATED,
            details={
                "batch_name": batch.batch_name,
                "batch_type": batch_type,
                "total_amount": str(total_amount),
                "total_payouts": len(payouts),
                "commission_count": len(included_ids),
                "estimated_gas_matic": str(gas["total_pol"]),
            },
            admin_id=created_by,
            entity_type="payout_batch",
            entity_id=batch.id,
        )
        logger.info(
            f"Created payout batch {batch.batch_name}: {len(payouts)} payouts, "
            f"${total_amount}"
        )
        return {
            "batch": batch,
            "payouts": [
                {
                    "user_id": p.user_id,
                    "amount": p.total,
                    "commission_count": len(p.commission_ids),
                }
                for p in payouts
            ],
        }
