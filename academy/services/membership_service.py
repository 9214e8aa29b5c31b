"""
Membership service.

Applies confirmed payments to a member: the one-time unlock that places
them in the tree, and recurring subscription payments that keep them
active and feed their upline's volume.
"""

from datetime import UTC, datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config.constants import DIRECT_BONUS_AMOUNT
from academy.models.enums import (
    CommissionStatus,
    CommissionType,
    MembershipStatus,
    NotificationType,
    PaymentSchedule,
    PaymentType,
)
from academy.models.payment import Payment
from academy.models.user import User
from academy.repositories.commission_repository import CommissionRepository
from academy.repositories.payment_repository import PaymentRepository
from academy.services.commission.qualification import QualificationService
from academy.services.network import NetworkPlacementService, NetworkQueryService
from academy.services.notification_service import NotificationService


class MembershipService:
    """Unlocks and subscription renewals."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.payment_repo = PaymentRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.placement = NetworkPlacementService(session)
        self.network = NetworkQueryService(session)
        self.qualification = QualificationService(session)
        self.notifications = NotificationService(session)

    async def unlock_membership(
        self,
        user: User,
        amount: Decimal,
        payment_method: str = "usdc",
        polygon_tx_hash: str | None = None,
        stripe_payment_intent_id: str | None = None,
    ) -> Payment | None:
        """
        Apply the initial unlock payment.

        Places the user under their referrer, activates them, credits the
        active count upchain, activates the referral and books the
        referrer's direct bonus.

        Returns:
            Recorded payment, or None when the user was already unlocked
        """
        if user.initial_payment_completed:
            logger.info(f"User {user.id} already unlocked, ignoring payment")
            return None

        await self.placement.assign_network_position(user.id, user.referred_by)

        now = datetime.now(UTC)
        user.membership_status = MembershipStatus.UNLOCKED
        user.is_active = True
        user.initial_payment_completed = True
        user.initial_payment_at = now
        user.activated_at = now
        user.last_payment_date = now
        await self.session.flush()

        await self.network.increment_upchain_active_count(user.id)

        payment = await self.payment_repo.create(
            user_id=user.id,
            amount=amount,
            payment_type=PaymentType.INITIAL,
            status="succeeded",
            payment_method=payment_method,
            polygon_tx_hash=polygon_tx_hash,
            stripe_payment_intent_id=stripe_payment_intent_id,
        )

        referrer = await self.qualification.activate_referral(user)
        if referrer is not None:
            await self._book_direct_bonus(referrer.id, user)

        logger.success(f"User {user.id} unlocked via {payment_method}")
        return payment

    async def _book_direct_bonus(self, referrer_id: int, referred: User) -> None:
        commission = await self.commission_repo.create(
            referrer_id=referrer_id,
            referred_id=referred.id,
            commission_type=CommissionType.DIRECT_BONUS,
            amount=DIRECT_BONUS_AMOUNT,
            status=CommissionStatus.PENDING,
            description=f"Direct bonus for referring user {referred.id}",
        )
        await self.notifications.enqueue(
            user_id=referrer_id,
            notification_type=NotificationType.DIRECT_BONUS,
            data={
                "amount": str(DIRECT_BONUS_AMOUNT),
                "referred_name": referred.name or "",
            },
            idempotency_key=f"direct_bonus:{commission.id}",
        )

    async def record_subscription_payment(
        self,
        user: User,
        amount: Decimal,
        schedule: str = PaymentSchedule.MONTHLY,
        payment_method: str = "usdc",
        polygon_tx_hash: str | None = None,
        stripe_payment_intent_id: str | None = None,
        stripe_invoice_id: str | None = None,
    ) -> Payment:
        """
        Apply a subscription payment.

        Reactivated members count toward their upline's active network
        again. The payment amount is added to every ancestor's volume;
        a failure there is logged and does not undo the payment.
        """
        was_active = user.is_active
        user.is_active = True
        user.last_payment_date = datetime.now(UTC)
        user.payment_schedule = schedule
        await self.session.flush()

        if not was_active and user.network_position_id:
            await self.network.increment_upchain_active_count(user.id)

        payment = await self.payment_repo.create(
            user_id=user.id,
            amount=amount,
            payment_type=(
                PaymentType.WEEKLY if schedule == PaymentSchedule.WEEKLY else PaymentType.MONTHLY
            ),
            status="succeeded",
            payment_method=payment_method,
            polygon_tx_hash=polygon_tx_hash,
            stripe_payment_intent_id=stripe_payment_intent_id,
            stripe_invoice_id=stripe_invoice_id,
        )

        try:
            async with self.session.begin_nested():
                await self.network.distribute_to_upline(user.id, amount)
        except SQLAlchemyError as e:
            logger.exception(f"Upline distribution for user {user.id} failed: {e}")

        return payment
