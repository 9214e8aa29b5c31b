"""
Sweep execution.

Moves the full USDC balance of ready deposit addresses to the treasury.
"""

from datetime import UTC, datetime
from typing import Any

from loguru import logger

from academy.config.constants import (
    MIN_GAS_FOR_SWEEP_POL,
    MIN_SWEEP_AMOUNT_USDC,
    SWEEP_EXECUTE_BATCH_SIZE,
    SWEEP_TRANSFER_GAS_LIMIT,
)
from academy.models.enums import SweepStatus
from academy.models.user import User
from academy.services.audit_service import AuditEvent
from academy.services.blockchain.usdc_client import raw_to_usdc
from academy.services.treasury.hd_wallet import derive_private_key, verify_derived_address
from academy.utils.exceptions import SecurityError
from academy.utils.security import mask_address

from .base import SweepStage


class SweepExecutor(SweepStage):
    """funding_sent -> ready, ready -> sweeping | idle | failed."""

    name = "execute"

    async def promote_funded(self, batch_size: int) -> int:
        """Move funding_sent users whose POL arrived to ready."""
        users = await self.user_repo.find_by_sweep_status(
            SweepStatus.FUNDING_SENT, batch_size
        )
        promoted = 0
        for user in users:
            pol_balance = await self.usdc_client.get_pol_balance(user.deposit_address)
            if pol_balance is not None and pol_balance >= MIN_GAS_FOR_SWEEP_POL:
                user.sweep_status = SweepStatus.READY
                promoted += 1
        if promoted:
            await self.session.flush()
            logger.info(f"Sweep execute: {promoted} users promoted to ready")
        return promoted

    async def run(self, batch_size: int = SWEEP_EXECUTE_BATCH_SIZE) -> dict[str, Any]:
        """
        Sweep ready deposit addresses into the treasury.

        Returns:
            {"processed", "promoted_to_ready", "swept", "emptied", "failed",
             "tx_hashes", "results"}

        Raises:
            TreasuryConfigurationError: Master key or treasury address missing
        """
        self.start_timer()
        xprv = await self.treasury.get_master_xprv()
        treasury_address = await self.treasury.get_treasury_address()

        promoted = await self.promote_funded(batch_size)
        users = await self.user_repo.find_by_sweep_status(
            SweepStatus.READY, batch_size, largest_balance_first=True
        )
        summary: dict[str, Any] = {
            "processed": len(users),
            "promoted_to_ready": promoted,
            "swept": 0,
            "emptied": 0,
            "failed": 0,
            "tx_hashes": [],
            "results": [],
        }
        if not users:
            logger.info("Sweep execute: no users ready to sweep")
            return summary

        for user in users:
            outcome = await self._sweep_user(user, xprv, treasury_address)
            summary[outcome["action"]] += 1
            if outcome.get("tx_hash"):
                summary["tx_hashes"].append(outcome["tx_hash"])
            summary["results"].append(outcome)
            await self.session.commit()

        await self.audit.log(
            AuditEvent.SWEEP_EXECUTE_COMPLETED,
            details={
                "promoted_to_ready": promoted,
                "users_swept": summary["swept"],
                "emptied": summary["emptied"],
                "failed": summary["failed"],
                "tx_hashes": summary["tx_hashes"],
                "treasury_address": treasury_address,
                "duration_ms": self.elapsed_ms(),
            },
            entity_type="treasury",
        )
        logger.info(
            f"Sweep execute: promoted {promoted}, swept {summary['swept']}, "
            f"failed {summary['failed']}"
        )
        return summary

    async def _sweep_user(
        self, user: User, xprv: str, treasury_address: str
    ) -> dict[str, Any]:
        try:
            private_key = derive_private_key(xprv, user.deposit_derivation_index)
            verify_derived_address(private_key, user.deposit_address)
        except (SecurityError, ValueError, TypeError) as e:
            return self._fail(user, f"Derived address mismatch: {e}")

        balance_raw = await self.usdc_client.get_usdc_balance_raw(user.deposit_address)
        if balance_raw is None:
            return self._fail(user, "Could not read USDC balance")

        balance = raw_to_usdc(balance_raw)
        if balance < MIN_SWEEP_AMOUNT_USDC:
            user.sweep_status = SweepStatus.IDLE
            user.sweep_usdc_balance = balance
            return {"user_id": user.id, "action": "emptied", "usdc_balance": balance}

        result = await self.usdc_client.transfer(
            private_key=private_key,
            to_address=treasury_address,
            amount_raw=balance_raw,
            gas_limit=SWEEP_TRANSFER_GAS_LIMIT,
            wait=False,
        )
        del private_key

        if not result["success"]:
            return self._fail(user, result.get("error") or "Sweep execution failed")

        user.sweep_status = SweepStatus.SWEEPING
        user.sweep_tx = result["tx_hash"]
        user.sweep_executed_at = datetime.now(UTC)
        user.sweep_usdc_balance = balance
        logger.info(
            f"Sweeping {balance} USDC from {mask_address(user.deposit_address)}"
        )
        return {
            "user_id": user.id,
            "action": "swept",
            "usdc_balance": balance,
            "tx_hash": result["tx_hash"],
        }

    def _fail(self, user: User, error: str) -> dict[str, Any]:
        user.sweep_status = SweepStatus.FAILED
        user.sweep_error = error
        logger.error(f"Sweep of {mask_address(user.deposit_address)} failed: {error}")
        return {"user_id": user.id, "action": "failed", "error": error}
