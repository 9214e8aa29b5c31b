"""
Deposit processing.

Turns USDC transfers to member deposit addresses into unlocks and
subscription renewals.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config.constants import (
    INITIAL_UNLOCK_AMOUNT,
    MONTHLY_SUBSCRIPTION_AMOUNT,
    PAYMENT_TOLERANCE_RATIO,
    WEEKLY_SUBSCRIPTION_AMOUNT,
)
from academy.models.enums import (
    CommissionStatus,
    CommissionType,
    PaymentSchedule,
    UsdcTransactionStatus,
    UsdcTransactionType,
)
from academy.models.user import User
from academy.repositories.commission_repository import CommissionRepository
from academy.repositories.usdc_transaction_repository import UsdcTransactionRepository
from academy.repositories.user_repository import UserRepository
from academy.services.audit_service import AuditEvent, AuditService
from academy.services.membership_service import MembershipService
from academy.utils.exceptions import PositionAssignmentError
from academy.utils.security import mask_tx_hash

from .alchemy import UsdcTransfer, parse_usdc_transfers

INITIAL_UNLOCK = "initial_unlock"
SUBSCRIPTION = "subscription"


def expected_payment(user: User) -> tuple[str, Decimal]:
    """Payment kind and amount the user owes next."""
    if not user.is_unlocked:
        return INITIAL_UNLOCK, INITIAL_UNLOCK_AMOUNT
    if user.payment_schedule == PaymentSchedule.WEEKLY:
        return SUBSCRIPTION, WEEKLY_SUBSCRIPTION_AMOUNT
    return SUBSCRIPTION, MONTHLY_SUBSCRIPTION_AMOUNT


class DepositProcessor:
    """Applies webhook-detected deposits."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.user_repo = UserRepository(session)
        self.tx_repo = UsdcTransactionRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.audit = AuditService(session)
        self.membership = MembershipService(session)

    async def process_payload(self, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Process every USDC transfer in a webhook payload.

        Each transfer runs in its own savepoint so one bad transfer does
        not lose the others.

        Returns:
            {"processed", "matched", "outcomes", "errors"}
        """
        transfers = parse_usdc_transfers(payload)
        summary: dict[str, Any] = {
            "processed": 0,
            "matched": 0,
            "outcomes": [],
            "errors": [],
        }

        for transfer in transfers:
            summary["processed"] += 1
            try:
                async with self.session.begin_nested():
                    outcome = await self.process_transfer(transfer)
            except (SQLAlchemyError, PositionAssignmentError) as e:
                logger.exception(f"Deposit {mask_tx_hash(transfer.tx_hash)} failed: {e}")
                summary["errors"].append(f"{transfer.tx_hash}: {e}")
                continue

            if outcome != "unmatched":
                summary["matched"] += 1
            summary["outcomes"].append({"tx_hash": transfer.tx_hash, "outcome": outcome})

        return summary

    async def process_transfer(self, transfer: UsdcTransfer) -> str:
        """
        Apply one transfer.

        Returns:
            unmatched, duplicate, underpaid, initial_unlock or subscription
        """
        user = await self.user_repo.get_by_deposit_address(transfer.to_address)
        if user is None:
            return "unmatched"

        if await self.tx_repo.get_by_tx_hash(transfer.tx_hash) is not None:
            logger.info(f"Deposit {mask_tx_hash(transfer.tx_hash)} already processed")
            return "duplicate"

        payment_type, expected = expected_payment(user)
        received = transfer.amount_usdc
        tolerance = expected * PAYMENT_TOLERANCE_RATIO
        now = datetime.now(UTC)

        if received < expected - tolerance:
            await self.audit.log(
                AuditEvent.DEPOSIT_UNDERPAID_WEBHOOK,
                details={
                    "source": "alchemy_webhook",
                    "tx_hash": transfer.tx_hash,
                    "expected_usdc": str(expected),
                    "received_usdc": str(received),
                    "shortfall_usdc": str(expected - received),
                    "payment_type": payment_type,
                },
                user_id=user.id,
                entity_type="user",
                entity_id=user.id,
            )
            await self._record_deposit(user, transfer, UsdcTransactionStatus.PARTIAL, now)
            logger.warning(
                f"Underpaid deposit from user {user.id}: {received} of {expected} USDC"
            )
            return "underpaid"

        overpayment = received - expected if received > expected + tolerance else Decimal("0")
        transaction = await self._record_deposit(
            user, transfer, UsdcTransactionStatus.CONFIRMED, now
        )
        await self.audit.log(
            AuditEvent.DEPOSIT_DETECTED_WEBHOOK,
            details={
                "source": "alchemy_webhook",
                "tx_hash": transfer.tx_hash,
                "block_number": transfer.block_number,
                "expected_usdc": str(expected),
                "received_usdc": str(received),
                "is_overpaid": overpayment > 0,
                "overpayment_amount": str(overpayment),
                "payment_type": payment_type,
            },
            user_id=user.id,
            entity_type="user",
            entity_id=user.id,
        )

        if payment_type == INITIAL_UNLOCK:
            payment = await self.membership.unlock_membership(
                user, received, polygon_tx_hash=transfer.tx_hash
            )
        else:
            payment = await self.membership.record_subscription_payment(
                user,
                received,
                schedule=user.payment_schedule or PaymentSchedule.MONTHLY,
                polygon_tx_hash=transfer.tx_hash,
            )
        if payment is not None:
            transaction.related_payment_id = payment.id

        if overpayment > 0:
            await self.commission_repo.create(
                referrer_id=user.id,
                referred_id=user.id,
                commission_type=CommissionType.OVERPAYMENT_CREDIT,
                amount=overpayment,
                net_amount_usdc=overpayment,
                status=CommissionStatus.PENDING,
                description=f"Overpayment credit from {payment_type} payment (via webhook)",
            )
            logger.info(f"Overpayment credit of {overpayment} USDC for user {user.id}")

        await self.session.flush()
        logger.success(f"Deposit of {received} USDC applied for user {user.id}")
        return payment_type

    async def _record_deposit(
        self, user: User, transfer: UsdcTransfer, status: str, now: datetime
    ):
        return await self.tx_repo.create(
            transaction_type=UsdcTransactionType.DEPOSIT,
            from_address=transfer.from_address,
            to_address=transfer.to_address,
            amount=transfer.amount_usdc,
            user_id=user.id,
            status=status,
            polygon_tx_hash=transfer.tx_hash,
            block_number=transfer.block_number,
            confirmed_at=now,
        )
