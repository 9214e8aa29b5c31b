"""
Stripe Connect bulk payouts.

Pays commissions in USD to members' Connect accounts, net of the
pass-through transfer fee.
"""

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession
from stripe import StripeError

from academy.config.constants import STRIPE_FEE_PERCENTAGE, STRIPE_PER_TRANSFER_FEE
from academy.config.settings import settings
from academy.models.commission import Commission
from academy.models.enums import CommissionStatus, NotificationType
from academy.models.user import User
from academy.repositories.commission_repository import CommissionRepository
from academy.repositories.user_repository import UserRepository
from academy.services.audit_service import AuditEvent, AuditService
from academy.services.notification_service import NotificationService
from academy.utils.exceptions import PayoutValidationError

from .stripe_gateway import StripeGateway

CENT = Decimal("0.01")


def net_of_fee(gross: Decimal) -> Decimal:
    """Amount left after the 3.5% transfer fee."""
    return gross - gross * STRIPE_FEE_PERCENTAGE


def to_cents(amount: Decimal) -> int:
    """Dollars to whole cents, half up."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def required_stripe_balance(commissions: Sequence[Commission]) -> Decimal:
    """Net total plus Stripe's own per-transfer fee."""
    total_gross = sum((c.amount for c in commissions), Decimal("0"))
    return net_of_fee(total_gross) + STRIPE_PER_TRANSFER_FEE * len(commissions)


def month_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Start of the previous and of the current month."""
    current = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    previous = (current - timedelta(days=1)).replace(day=1)
    return previous, current


class StripePayoutService:
    """Bulk commission payouts through Stripe Connect."""

    def __init__(self, session: AsyncSession, gateway: StripeGateway) -> None:
        self.session = session
        self.gateway = gateway
        self.commission_repo = CommissionRepository(session)
        self.user_repo = UserRepository(session)
        self.notifications = NotificationService(session)

    async def process_stripe_bulk(
        self,
        commission_ids: Sequence[int] | None = None,
        admin_id: int | None = None,
    ) -> dict[str, Any]:
        """
        Transfer payable commissions to Connect accounts.

        Args:
            commission_ids: Explicit selection; default is monthly residuals
                plus last month's direct bonuses, pending or failed
            admin_id: Acting admin

        Returns:
            {"successful", "failed", "skipped", "total", "results"}

        Raises:
            PayoutValidationError: Payouts paused or Stripe balance too low
        """
        if settings.emergency_stop_payouts:
            raise PayoutValidationError("Payouts are paused (EMERGENCY_STOP_PAYOUTS)")

        now = datetime.now(UTC)
        previous_month_start, current_month_start = month_bounds(now)
        commissions = await self.commission_repo.find_for_stripe_payout(
            previous_month_start, current_month_start, commission_ids
        )
        if not commissions:
            return {
                "successful": 0,
                "failed": 0,
                "skipped": 0,
                "total": 0,
                "results": [],
                "message": "No commissions to process",
            }

        available = await self.gateway.get_available_usd()
        needed = required_stripe_balance(commissions)
        if available < needed:
            raise PayoutValidationError(
                f"Insufficient Stripe balance. Available: ${available:.2f}, "
                f"Needed: ${needed:.2f}"
            )

        users = await self.user_repo.find_by_ids({c.referrer_id for c in commissions})
        users_by_id = {u.id: u for u in users}
        payment_month = now.strftime("%Y-%m")
        counts = {"successful": 0, "failed": 0, "skipped": 0}
        results: list[dict[str, Any]] = []

        for selected in commissions:
            commission = await self.commission_repo.get_for_update(selected.id)
            if commission is None:
                continue
            outcome = await self._pay_one(
                commission, users_by_id.get(commission.referrer_id), payment_month
            )
            counts[outcome.pop("outcome")] += 1
            results.append(outcome)
            # releases the row lock and keeps the transfer on record
            await self.session.commit()

        await AuditService(self.session).log(
            AuditEvent.STRIPE_BULK_PAYOUT,
            details={**counts, "total": len(commissions), "payment_month": payment_month},
            admin_id=admin_id,
            entity_type="commission",
        )
        logger.info(
            f"Stripe bulk payout: {counts['successful']} paid, {counts['failed']} failed, "
            f"{counts['skipped']} skipped"
        )
        return {**counts, "total": len(commissions), "results": results}

    async def _pay_one(
        self, commission: Commission, user: User | None, payment_month: str
    ) -> dict[str, Any]:
        user_name = (user.name if user else None) or "Unknown"
        base = {
            "commission_id": commission.id,
            "user_name": user_name,
            "amount": commission.amount,
        }

        if commission.status == CommissionStatus.PAID:
            return {
                **base,
                "outcome": "skipped",
                "success": False,
                "skipped": True,
                "error": "Already paid",
            }

        if user is None or not user.stripe_connect_account_id:
            return await self._fail(commission, base, "No Stripe Connect account")

        try:
            account = await self.gateway.retrieve_account(user.stripe_connect_account_id)
        except StripeError as e:
            return await self._fail(commission, base, f"Stripe account error: {e}")
        if not account["payouts_enabled"]:
            return await self._fail(commission, base, "Bank account not verified")

        net_amount = net_of_fee(commission.amount).quantize(CENT, rounding=ROUND_HALF_UP)
        try:
            transfer = await self.gateway.create_transfer(
                amount_cents=to_cents(net_of_fee(commission.amount)),
                destination=user.stripe_connect_account_id,
                transfer_group=f"monthly_payout_{commission.id}",
                metadata={
                    "userId": str(commission.referrer_id),
                    "payoutId": str(commission.id),
                    "type": commission.commission_type,
                    "paymentMonth": payment_month,
                },
            )
        except StripeError as e:
            return await self._fail(commission, base, f"Transfer failed: {e}")

        now = datetime.now(UTC)
        commission.status = CommissionStatus.PAID
        commission.paid_at = now
        commission.processed_at = now
        commission.stripe_transfer_id = transfer["id"]
        commission.error_message = None
        await self.session.flush()

        await self.notifications.enqueue(
            user_id=commission.referrer_id,
            notification_type=NotificationType.PAYOUT_PROCESSED,
            data={
                "amount": str(net_amount),
                "commission_type": commission.commission_type,
                "payout_id": commission.id,
            },
            idempotency_key=f"payout_processed:{commission.id}",
        )
        return {
            **base,
            "outcome": "successful",
            "amount": net_amount,
            "success": True,
            "transfer_id": transfer["id"],
        }

    async def _fail(
        self, commission: Commission, base: dict[str, Any], error: str
    ) -> dict[str, Any]:
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
        logger.warning(f"Stripe payout of commission {commission.id} failed: {error}")
        return {**base, "outcome": "failed", "success": False, "error": error}
