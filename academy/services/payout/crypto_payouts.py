"""
Single commission payout in USDC.

Admin-triggered payout of one commission from the payout wallet.
"""

from datetime import UTC, datetime
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config.settings import settings
from academy.models.commission import Commission
from academy.models.enums import (
    CommissionStatus,
    NotificationType,
    UsdcTransactionStatus,
    UsdcTransactionType,
)
from academy.repositories.commission_repository import CommissionRepository
from academy.repositories.usdc_transaction_repository import UsdcTransactionRepository
from academy.repositories.user_repository import UserRepository
from academy.services.audit_service import AuditEvent, AuditService
from academy.services.blockchain.usdc_client import UsdcClient
from academy.services.notification_service import NotificationService
from academy.services.treasury import TreasuryService
from academy.utils.exceptions import NotFoundError, PayoutValidationError

NO_PAYOUT_WALLET_ERROR = "User does not have a payout wallet address configured"


class CryptoPayoutService:
    """Pays single commissions in USDC."""

    def __init__(
        self,
        session: AsyncSession,
        usdc_client: UsdcClient,
        treasury: TreasuryService | None = None,
    ) -> None:
        self.session = session
        self.usdc_client = usdc_client
        self.treasury = treasury or TreasuryService(session)
        self.commission_repo = CommissionRepository(session)
        self.user_repo = UserRepository(session)
        self.tx_repo = UsdcTransactionRepository(session)
        self.notifications = NotificationService(session)

    async def process_commission_payout(
        self, commission_id: int, admin_id: int | None = None
    ) -> dict[str, Any]:
        """
        Pay one commission to the member's payout wallet.

        Returns:
            {"success", "commission_id", ...}; failures after validation are
            recorded on the commission and returned, not raised

        Raises:
            NotFoundError: No such commission
            PayoutValidationError: Payouts paused or member not qualified
        """
        if settings.emergency_stop_payouts:
            raise PayoutValidationError("Payouts are paused (EMERGENCY_STOP_PAYOUTS)")

        # held until the caller commits, so a second request waits and then
        # sees the paid status
        commission = await self.commission_repo.get_for_update(commission_id)
        if commission is None:
            raise NotFoundError(f"Commission {commission_id} not found")

        if commission.status == CommissionStatus.PAID:
            return {
                "success": False,
                "skipped": True,
                "message": "This commission has already been paid",
                "commission_id": commission_id,
            }

        user = await self.user_repo.get_by_id(commission.referrer_id)
        if user is None or not user.qualified:
            raise PayoutValidationError("Cannot process payout: User is not qualified")

        if not user.payout_wallet_address:
            return await self._fail(commission, NO_PAYOUT_WALLET_ERROR)

        amount = commission.payable_amount
        payout_key = self.treasury.get_payout_wallet_key()
        payout_address = self.usdc_client.address_from_key(payout_key)

        available = await self.usdc_client.get_usdc_balance(payout_address)
        if available is None:
            return {
                "success": False,
                "error": "Could not verify payout wallet balance",
                "commission_id": commission_id,
            }
        if available < amount:
            return {
                "success": False,
                "error": (
                    f"Insufficient payout wallet balance. Have: {available:.2f} USDC, "
                    f"Need: {amount:.2f} USDC"
                ),
                "commission_id": commission_id,
            }

        transfer = await self.usdc_client.transfer(
            private_key=payout_key,
            to_address=user.payout_wallet_address,
            amount_usdc=amount,
        )
        if not transfer["success"] and transfer.get("status") != "pending":
            return await self._fail(commission, transfer.get("error") or "USDC transfer failed")

        now = datetime.now(UTC)
        confirmed = transfer["success"]
        transaction = await self.tx_repo.create(
            transaction_type=UsdcTransactionType.PAYOUT,
            from_address=payout_address.lower(),
            to_address=user.payout_wallet_address.lower(),
            amount=amount,
            user_id=user.id,
            status=(
                UsdcTransactionStatus.CONFIRMED if confirmed else UsdcTransactionStatus.PENDING
            ),
            polygon_tx_hash=transfer["tx_hash"].lower(),
            block_number=transfer.get("block_number"),
            gas_fee_matic=transfer.get("gas_fee_pol"),
            related_commission_id=commission.id,
            confirmed_at=now if confirmed else None,
        )

        commission.status = CommissionStatus.PAID
        commission.paid_at = now
        commission.processed_at = now
        commission.usdc_transaction_id = transaction.id
        commission.error_message = None
        await self.session.flush()

        await AuditService(self.session).log(
            AuditEvent.PAYOUT_EXECUTED,
            details={
                "amount": str(amount),
                "tx_hash": transfer["tx_hash"],
                "wallet_address": user.payout_wallet_address,
                "commission_type": commission.commission_type,
            },
            user_id=user.id,
            admin_id=admin_id,
            entity_type="commission",
            entity_id=commission.id,
        )
        await self.notifications.enqueue(
            user_id=user.id,
            notification_type=NotificationType.PAYOUT_PROCESSED,
            data={
                "amount": str(amount),
                "commission_type": commission.commission_type,
                "payout_id": commission.id,
            },
            idempotency_key=f"payout_processed:{commission.id}",
        )
        logger.success(f"Commission {commission.id} paid: {amount} USDC")
        return {
            "success": True,
            "tx_hash": transfer["tx_hash"],
            "commission_id": commission.id,
            "amount": amount,
        }

    async def _fail(self, commission: Commission, error: str) -> dict[str, Any]:
        await self.commission_repo.record_failure(commission, error, datetime.now(UTC))
        await self.notifications.enqueue(
            user_id=commission.referrer_id,
            notification_type=NotificationType.PAYOUT_FAILED,
            data={
                "amount": str(commission.amount),
                "reason": error,
                "dashboard_url": f"{settings.site_url}/settings",
                "payout_id": commission.id,
            },
            idempotency_key=f"payout_failed:{commission.id}:{commission.retry_count}",
        )
        logger.warning(f"Commission {commission.id} payout failed: {error}")
        return {"success": False, "error": error, "commission_id": commission.id}
