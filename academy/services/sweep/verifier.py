"""
Sweep verification.

Confirms sweep transfers on chain and records them.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from loguru import logger
from web3.exceptions import Web3Exception

from academy.config.constants import SWEEP_VERIFY_BATCH_SIZE
from academy.models.enums import (
    SweepStatus,
    UsdcTransactionStatus,
    UsdcTransactionType,
)
from academy.models.user import User
from academy.repositories.usdc_transaction_repository import UsdcTransactionRepository
from academy.services.audit_service import AuditEvent
from academy.utils.security import mask_tx_hash

from .base import SweepStage


class SweepVerifier(SweepStage):
    """sweeping -> idle | failed."""

    name = "verify"

    async def run(self, batch_size: int = SWEEP_VERIFY_BATCH_SIZE) -> dict[str, Any]:
        """
        Check receipts of in-flight sweeps.

        Unmined transactions and RPC errors leave the user in sweeping for
        the next run.

        Returns:
            {"processed", "confirmed", "pending", "failed", "total_swept_usdc",
             "results"}
        """
        self.start_timer()
        users = await self.user_repo.find_by_sweep_status(SweepStatus.SWEEPING, batch_size)
        summary: dict[str, Any] = {
            "processed": len(users),
            "confirmed": 0,
            "pending": 0,
            "failed": 0,
            "total_swept_usdc": Decimal("0"),
            "results": [],
        }
        if not users:
            logger.info("Sweep verify: no transactions to verify")
            return summary

        treasury_address = await self.treasury.get_treasury_address()
        tx_repo = UsdcTransactionRepository(self.session)

        for user in users:
            if not user.sweep_tx:
                self._mark_failed(user, "Sweep transaction hash missing")
                summary["failed"] += 1
                continue

            try:
                receipt = await self.usdc_client.get_receipt(user.sweep_tx)
            except (TimeoutError, Web3Exception, ConnectionError, OSError) as e:
                logger.warning(f"Receipt lookup for {mask_tx_hash(user.sweep_tx)} failed: {e}")
                summary["pending"] += 1
                continue

            if receipt is None:
                summary["pending"] += 1
                summary["results"].append({"user_id": user.id, "action": "pending"})
                continue

            if receipt["status"] == 1:
                await self._confirm(user, receipt, treasury_address, tx_repo)
                summary["confirmed"] += 1
                summary["total_swept_usdc"] += user.sweep_usdc_balance or Decimal("0")
                summary["results"].append(
                    {"user_id": user.id, "action": "confirmed", "tx_hash": user.sweep_tx}
                )
            else:
                self._mark_failed(user, "Transaction reverted on-chain")
                await self.audit.log(
                    AuditEvent.DEPOSIT_SWEEP_FAILED,
                    details={
                        "deposit_address": user.deposit_address,
                        "tx_hash": user.sweep_tx,
                        "error": "Transaction reverted",
                    },
                    user_id=user.id,
                    entity_type="user",
                    entity_id=user.id,
                )
                summary["failed"] += 1
                summary["results"].append(
                    {"user_id": user.id, "action": "failed", "tx_hash": user.sweep_tx}
                )

        await self.session.flush()
        await self.audit.log(
            AuditEvent.SWEEP_VERIFY_COMPLETED,
            details={
                "transactions_checked": len(users),
                "confirmed": summary["confirmed"],
                "pending": summary["pending"],
                "failed": summary["failed"],
                "total_swept_usdc": str(summary["total_swept_usdc"]),
                "duration_ms": self.elapsed_ms(),
            },
            entity_type="treasury",
        )
        logger.info(
            f"Sweep verify: confirmed {summary['confirmed']}, "
            f"pending {summary['pending']}, failed {summary['failed']}"
        )
        return summary

    async def _confirm(
        self,
        user: User,
        receipt: dict[str, Any],
        treasury_address: str,
        tx_repo: UsdcTransactionRepository,
    ) -> None:
        now = datetime.now(UTC)
        user.sweep_status = SweepStatus.IDLE
        user.sweep_completed_at = now
        user.sweep_error = None

        if await tx_repo.get_by_tx_hash(user.sweep_tx) is None:
            await tx_repo.create(
                transaction_type=UsdcTransactionType.SWEEP,
                from_address=user.deposit_address,
                to_address=treasury_address.lower(),
                amount=user.sweep_usdc_balance or Decimal("0"),
                user_id=user.id,
                status=UsdcTransactionStatus.CONFIRMED,
                polygon_tx_hash=user.sweep_tx.lower(),
                block_number=receipt["block_number"],
                gas_fee_matic=receipt.get("gas_fee_pol"),
                confirmed_at=now,
            )

        await self.audit.log(
            AuditEvent.DEPOSIT_SWEPT,
            details={
                "deposit_address": user.deposit_address,
                "amount_usdc": str(user.sweep_usdc_balance),
                "tx_hash": user.sweep_tx,
                "block_number": receipt["block_number"],
                "gas_used": receipt["gas_used"],
            },
            user_id=user.id,
            entity_type="user",
            entity_id=user.id,
        )
        logger.success(
            f"Sweep confirmed: {user.sweep_usdc_balance} USDC from user {user.id}"
        )

    @staticmethod
    def _mark_failed(user: User, error: str) -> None:
        user.sweep_status = SweepStatus.FAILED
        user.sweep_error = error
