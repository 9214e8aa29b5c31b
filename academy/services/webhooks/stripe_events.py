"""
Stripe webhook events.

Card checkouts, subscription lifecycle and invoice payments. Payout and
transfer events are only audited.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config.constants import (
    STRIPE_INITIAL_PAYMENT_AMOUNT,
    STRIPE_SUBSCRIPTION_MONTHLY_AMOUNT,
)
from academy.models.enums import PaymentSchedule, ReferralStatus
from academy.repositories.payment_repository import PaymentRepository
from academy.repositories.referral_repository import ReferralRepository
from academy.repositories.subscription_repository import SubscriptionRepository
from academy.repositories.user_repository import UserRepository
from academy.services.audit_service import AuditEvent, AuditService
from academy.services.membership_service import MembershipService

AUDITED_PAYOUT_EVENTS = ("payout.paid", "payout.failed", "transfer.created")


def _timestamp(value: int | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=UTC)


class StripeEventHandler:
    """Dispatches verified Stripe events by type."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.user_repo = UserRepository(session)
        self.payment_repo = PaymentRepository(session)
        self.subscription_repo = SubscriptionRepository(session)
        self.referral_repo = ReferralRepository(session)
        self.audit = AuditService(session)
        self.membership = MembershipService(session)

    async def handle(self, event: dict[str, Any]) -> str:
        """
        Apply one event.

        Returns:
            Short outcome string (handled, ignored, duplicate, ...)
        """
        event_type = event.get("type", "")
        obj = event.get("data", {}).get("object", {})
        logger.info(f"Stripe event {event.get('id')} ({event_type})")

        if event_type == "checkout.session.completed":
            return await self._checkout_completed(obj)
        if event_type in ("customer.subscription.updated", "customer.subscription.deleted"):
            return await self._subscription_changed(
                obj, deleted=event_type.endswith("deleted")
            )
        if event_type == "invoice.payment_succeeded":
            return await self._invoice_paid(obj)
        if event_type in AUDITED_PAYOUT_EVENTS:
            await self.audit.log(
                AuditEvent.STRIPE_PAYOUT_EVENT,
                details={
                    "event_type": event_type,
                    "object_id": obj.get("id"),
                    "amount_cents": obj.get("amount"),
                    "status": obj.get("status"),
                    "failure_message": obj.get("failure_message"),
                },
                entity_type="stripe",
            )
            return "audited"

        return "ignored"

    async def _checkout_completed(self, checkout: dict[str, Any]) -> str:
        metadata = checkout.get("metadata") or {}
        user_id = metadata.get("userId")
        payment_type = metadata.get("paymentType")
        if not user_id or not payment_type:
            logger.warning(f"Checkout {checkout.get('id')} has no user metadata")
            return "ignored"

        user = await self.user_repo.get_by_id(int(user_id))
        if user is None:
            logger.warning(f"Checkout {checkout.get('id')} for unknown user {user_id}")
            return "ignored"

        if checkout.get("customer") and not user.stripe_customer_id:
            user.stripe_customer_id = checkout["customer"]

        if payment_type == "initial":
            intent_id = checkout.get("payment_intent")
            if intent_id and await self.payment_repo.exists(
                stripe_payment_intent_id=intent_id
            ):
                return "duplicate"
            payment = await self.membership.unlock_membership(
                user,
                STRIPE_INITIAL_PAYMENT_AMOUNT,
                payment_method="stripe",
                stripe_payment_intent_id=intent_id,
            )
            return "unlocked" if payment is not None else "duplicate"

        if payment_type == "subscription":
            subscription_id = checkout.get("subscription")
            if not subscription_id:
                return "ignored"
            if await self.subscription_repo.get_by_stripe_id(subscription_id) is None:
                await self.subscription_repo.create(
                    user_id=user.id,
                    stripe_subscription_id=subscription_id,
                    stripe_customer_id=checkout.get("customer"),
                    status="active",
                    amount=STRIPE_SUBSCRIPTION_MONTHLY_AMOUNT,
                )
            return "subscription_created"

        return "ignored"

    async def _subscription_changed(self, data: dict[str, Any], deleted: bool) -> str:
        subscription = await self.subscription_repo.get_by_stripe_id(data.get("id", ""))
        if subscription is None:
            return "ignored"

        subscription.status = "canceled" if deleted else data.get("status", subscription.status)
        subscription.current_period_start = _timestamp(data.get("current_period_start"))
        subscription.current_period_end = _timestamp(data.get("current_period_end"))
        subscription.cancel_at_period_end = bool(data.get("cancel_at_period_end"))

        if deleted:
            referral = await self.referral_repo.get_by_referred(subscription.user_id)
            if referral is not None:
                referral.status = ReferralStatus.INACTIVE

        await self.session.flush()
        return "subscription_updated"

    async def _invoice_paid(self, invoice: dict[str, Any]) -> str:
        customer_id = invoice.get("customer")
        user = (
            await self.user_repo.get_by_stripe_customer_id(customer_id)
            if customer_id else None
        )
        if user is None:
            return "ignored"

        invoice_id = invoice.get("id")
        if invoice_id and await self.payment_repo.exists(stripe_invoice_id=invoice_id):
            return "duplicate"

        amount = Decimal(invoice.get("amount_paid", 0)) / 100
        await self.membership.record_subscription_payment(
            user,
            amount,
            schedule=PaymentSchedule.MONTHLY,
            payment_method="stripe",
            stripe_payment_intent_id=invoice.get("payment_intent"),
            stripe_invoice_id=invoice_id,
        )
        return "subscription_paid"
