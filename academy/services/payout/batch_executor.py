"""
Payout batch execution.

Pays an approved batch from the payout wallet, one USDC transfer per
member, and records the outcome per commission.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config.settings import settings
from academy.models.enums import (
    CommissionStatus,
    PayoutBatchStatus,
    UsdcTransactionStatus,
    UsdcTransactionType,
)
from academy.models.payout_batch import PayoutBatch
from academy.repositories.commission_repository import CommissionRepository
from academy.repositories.payout_batch_repository import PayoutBatchRepository
from academy.repositories.usdc_transaction_repository import UsdcTransactionRepository
from academy.repositories.user_repository import UserRepository
from academy.services.audit_service import AuditEvent, AuditService
from academy.services.blockchain.usdc_client import UsdcClient
from academy.services.treasury import TreasuryService
from academy.utils.exceptions import PayoutValidationError
from academy.utils.security import mask_address

from .batch_approval import raise_transition_conflict
from .batch_builder import UserPayout, group_commissions_by_user

NO_WALLET_ERROR = "User has no active wallet"


class PayoutBatchExecutor:
    """approved -> processing -> completed."""

    def __init__(
        self,
        session: AsyncSession,
        usdc_client: UsdcClient,
        treasury: TreasuryService | None = None,
    ) -> None:
        self.session = session
        self.usdc_client = usdc_client
        self.treasury = treasury or TreasuryService(session)
        self.batch_repo = PayoutBatchRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.user_repo = UserRepository(session)
        self.tx_repo = UsdcTransactionRepository(session)

    async def execute_batch(
        self, batch_id: int, admin_id: int | None = None
    ) -> dict[str, Any]:
        """
        Execute an approved batch.

        Failures of single members are recorded in the batch error_log and
        on their commissions; the batch always finishes as completed.

        The processing transition and every member outcome are committed
        as they happen, so a crash mid-batch never loses a broadcast
        transfer. A batch left in processing is not picked up again.

        Returns:
            {"batch", "successful", "failed", "total_gas_spent", "results"}

        Raises:
            PayoutValidationError: Payouts paused
            NotFoundError: No such batch
            PayoutBatchStateError: Batch is not approved
            TreasuryConfigurationError: Payout wallet key missing
        """
        if settings.emergency_stop_payouts:
            raise PayoutValidationError("Payouts are paused (EMERGENCY_STOP_PAYOUTS)")
        payout_key = self.treasury.get_payout_wallet_key()

        batch = await self.batch_repo.transition(
            batch_id,
            PayoutBatchStatus.APPROVED,
            PayoutBatchStatus.PROCESSING,
            processing_started_at=datetime.now(UTC),
        )
        if batch is None:
            await raise_transition_conflict(
                self.batch_repo, batch_id, PayoutBatchStatus.APPROVED
            )
        await self.session.commit()

        commissions = await self.commission_repo.find_pending_in_batch(batch_id)
        if not commissions:
            batch.status = PayoutBatchStatus.COMPLETED
            batch.completed_at = datetime.now(UTC)
            await self.session.commit()
            logger.info(f"Payout batch {batch.batch_name} had no pending commissions")
            return {
                "batch": batch,
                "successful": 0,
                "failed": 0,
                "total_gas_spent": Decimal("0"),
                "results": [],
                "message": "No commissions to process",
            }

        by_id = {c.id: c for c in commissions}
        grouped = group_commissions_by_user(commissions)
        users = await self.user_repo.find_by_ids(grouped.keys())
        wallets = {u.id: u.payout_wallet_address for u in users if u.payout_wallet_address}
        payout_address = self.usdc_client.address_from_key(payout_key)

        successful = 0
        failed = 0
        total_gas = Decimal("0")
        error_log: list[dict[str, Any]] = []
        results: list[dict[str, Any]] = []

        for user_id, payout in grouped.items():
            payout.wallet_address = wallets.get(user_id)
            if not payout.wallet_address:
                failed += self._fail_payout(payout, by_id, NO_WALLET_ERROR, error_log, results)
                await self.session.commit()
                continue

            transfer = await self.usdc_client.transfer(
                private_key=payout_key,
                to_address=payout.wallet_address,
                amount_usdc=payout.total,
            )
            if not transfer["success"] and transfer.get("status") != "pending":
                error = transfer.get("error") or "Transfer failed"
                failed += self._fail_payout(payout, by_id, error, error_log, results)
                await self.session.commit()
                continue

            gas = await self._record_payout(batch, payout, payout_address, transfer, by_id)
            await self.session.commit()
            total_gas += gas
            successful += len(payout.commission_ids)
            results.extend(
                {
                    "commission_id": cid,
                    "user_id": user_id,
                    "amount": payout.total,
                    "tx_hash": transfer["tx_hash"],
                    "status": "success",
                }
                for cid in payout.commission_ids
            )

        now = datetime.now(UTC)
        batch.status = PayoutBatchStatus.COMPLETED
        batch.successful_payouts = successful
        batch.failed_payouts = failed
        batch.total_gas_spent_matic = total_gas
        batch.error_log = error_log
        batch.completed_at = now
        await self.session.commit()

        await AuditService(self.session).log(
            AuditEvent.PAYOUT_EXECUTED,
            details={
                "batch_name": batch.batch_name,
                "successful": successful,
                "failed": failed,
                "total_gas_spent": str(total_gas),
            },
            admin_id=admin_id,
            entity_type="payout_batch",
            entity_id=batch_id,
        )
        logger.success(
            f"Payout batch {batch.batch_name} completed: {successful} paid, {failed} failed"
        )
        return {
            "batch": batch,
            "successful": successful,
            "failed": failed,
            "total_gas_spent": total_gas,
            "results": results,
        }

    def _fail_payout(
        self,
        payout: UserPayout,
        by_id: dict,
        error: str,
        error_log: list[dict[str, Any]],
        results: list[dict[str, Any]],
    ) -> int:
        now = datetime.now(UTC)
        for cid in payout.commission_ids:
            commission = by_id[cid]
            commission.status = CommissionStatus.FAILED
            commission.error_message = error
            commission.processed_at = now
            commission.retry_count = (commission.retry_count or 0) + 1
            error_log.append(
                {"commission_id": cid, "error": error, "timestamp": now.isoformat()}
            )
            results.append(
                {
                    "commission_id": cid,
                    "user_id": payout.user_id,
                    "amount": payout.total,
                    "tx_hash": None,
                    "status": "failed",
                    "error": error,
                }
            )
        logger.warning(f"Payout to user {payout.user_id} failed: {error}")
        return len(payout.commission_ids)

    async def _record_payout(
        self,
        batch: PayoutBatch,
        payout: UserPayout,
        payout_address: str,
        transfer: dict[str, Any],
        by_id: dict,
    ) -> Decimal:
        """Store the transfer and mark commissions paid. Returns gas spent."""
        confirmed = transfer["success"]
        now = datetime.now(UTC)
        gas_fee = transfer.get("gas_fee_pol") or Decimal("0")

        transaction = await self.tx_repo.create(
            transaction_type=UsdcTransactionType.PAYOUT,
            from_address=payout_address.lower(),
            to_address=payout.wallet_address.lower(),
            amount=payout.total,
            user_id=payout.user_id,
            status=(
                UsdcTransactionStatus.CONFIRMED if confirmed else UsdcTransactionStatus.PENDING
            ),
            polygon_tx_hash=transfer["tx_hash"].lower(),
            block_number=transfer.get("block_number"),
            gas_fee_matic=gas_fee if confirmed else None,
            payout_batch_id=batch.id,
            confirmed_at=now if confirmed else None,
        )

        for cid in payout.commission_ids:
            commission = by_id[cid]
            commission.status = CommissionStatus.PAID
            commission.usdc_transaction_id = transaction.id
            commission.paid_at = now
            commission.processed_at = now
            commission.error_message = None
        await self.session.flush()

        logger.info(
            f"Paid {payout.total} USDC to {mask_address(payout.wallet_address)} "
            f"({len(payout.commission_ids)} commissions)"
        )
        return gas_fee
