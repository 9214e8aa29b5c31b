"""Unit tests for Stripe webhook event handling."""

from datetime import UTC, datetime
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from academy.models.enums import PaymentSchedule, ReferralStatus
from academy.services.audit_service import AuditEvent
from academy.services.webhooks.stripe_events import StripeEventHandler


def _event(event_type: str, obj: dict) -> dict:
    return {"id": "evt_1", "type": event_type, "data": {"object": obj}}


@pytest.fixture
def handler(mock_session):
    handler = StripeEventHandler(mock_session)
    handler.user_repo = AsyncMock()
    handler.payment_repo = AsyncMock()
    handler.payment_repo.exists.return_value = False
    handler.subscription_repo = AsyncMock()
    handler.referral_repo = AsyncMock()
    handler.audit = AsyncMock()
    handler.membership = AsyncMock()
    return handler


class TestCheckoutCompleted:
    """checkout.session.completed."""

    @pytest.mark.asyncio
    async def test_initial_payment_unlocks(self, handler, make_user):
        user = make_user(id=4)
        handler.user_repo.get_by_id.return_value = user
        handler.membership.unlock_membership.return_value = SimpleNamespace(id=1)

        outcome = await handler.handle(_event("checkout.session.completed", {
            "id": "cs_1",
            "customer": "cus_1",
            "payment_intent": "pi_1",
            "metadata": {"userId": "4", "paymentType": "initial"},
        }))

        assert outcome == "unlocked"
        assert user.stripe_customer_id == "cus_1"
        call = handler.membership.unlock_membership.await_args
        assert call.args == (user, Decimal("500.00"))
        assert call.kwargs["payment_method"] == "stripe"
        assert call.kwargs["stripe_payment_intent_id"] == "pi_1"

    @pytest.mark.asyncio
    async def test_repeated_intent_is_duplicate(self, handler, make_user):
        handler.user_repo.get_by_id.return_value = make_user()
        handler.payment_repo.exists.return_value = True

        outcome = await handler.handle(_event("checkout.session.completed", {
            "payment_intent": "pi_1",
            "metadata": {"userId": "1", "paymentType": "initial"},
        }))

        assert outcome == "duplicate"
        handler.membership.unlock_membership.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_metadata_ignored(self, handler):
        outcome = await handler.handle(_event("checkout.session.completed", {"id": "cs_2"}))

        assert outcome == "ignored"
        handler.user_repo.get_by_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_subscription_checkout_creates_row_once(self, handler, make_user):
        handler.user_repo.get_by_id.return_value = make_user(id=2)
        handler.subscription_repo.get_by_stripe_id.return_value = None
        event = _event("checkout.session.completed", {
            "customer": "cus_2",
            "subscription": "sub_1",
            "metadata": {"userId": "2", "paymentType": "subscription"},
        })

        assert await handler.handle(event) == "subscription_created"
        kwargs = handler.subscription_repo.create.await_args.kwargs
        assert kwargs["status"] == "active"
        assert kwargs["amount"] == Decimal("200.00")

        handler.subscription_repo.get_by_stripe_id.return_value = SimpleNamespace(id=1)
        await handler.handle(event)
        assert handler.subscription_repo.create.await_count == 1


class TestSubscriptionLifecycle:
    """customer.subscription.updated / deleted."""

    @pytest.mark.asyncio
    async def test_update_copies_period(self, handler):
        subscription = SimpleNamespace(
            user_id=3, status="active", current_period_start=None,
            current_period_end=None, cancel_at_period_end=False,
        )
        handler.subscription_repo.get_by_stripe_id.return_value = subscription

        outcome = await handler.handle(_event("customer.subscription.updated", {
            "id": "sub_1",
            "status": "past_due",
            "current_period_start": 1_767_225_600,
            "current_period_end": 1_769_904_000,
            "cancel_at_period_end": True,
        }))

        assert outcome == "subscription_updated"
        assert subscription.status == "past_due"
        assert subscription.current_period_start == datetime(2026, 1, 1, tzinfo=UTC)
        assert subscription.cancel_at_period_end is True
        handler.referral_repo.get_by_referred.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_cancels_and_deactivates_referral(self, handler):
        subscription = SimpleNamespace(
            user_id=3, status="active", current_period_start=None,
            current_period_end=None, cancel_at_period_end=False,
        )
        referral = SimpleNamespace(status=ReferralStatus.ACTIVE)
        handler.subscription_repo.get_by_stripe_id.return_value = subscription
        handler.referral_repo.get_by_referred.return_value = referral

        await handler.handle(_event("customer.subscription.deleted", {"id": "sub_1"}))

        assert subscription.status == "canceled"
        assert referral.status == ReferralStatus.INACTIVE

    @pytest.mark.asyncio
    async def test_unknown_subscription_ignored(self, handler):
        handler.subscription_repo.get_by_stripe_id.return_value = None

        outcome = await handler.handle(
            _event("customer.subscription.updated", {"id": "sub_x"})
        )

        assert outcome == "ignored"


class TestInvoicePaid:
    """invoice.payment_succeeded."""

    @pytest.mark.asyncio
    async def test_records_renewal(self, handler, make_user):
        user = make_user(stripe_customer_id="cus_1")
        handler.user_repo.get_by_stripe_customer_id.return_value = user

        outcome = await handler.handle(_event("invoice.payment_succeeded", {
            "id": "in_1", "customer": "cus_1", "amount_paid": 20000,
            "payment_intent": "pi_9",
        }))

        assert outcome == "subscription_paid"
        call = handler.membership.record_subscription_payment.await_args
        assert call.args == (user, Decimal("200"))
        assert call.kwargs["schedule"] == PaymentSchedule.MONTHLY
        assert call.kwargs["stripe_invoice_id"] == "in_1"

    @pytest.mark.asyncio
    async def test_duplicate_invoice(self, handler, make_user):
        handler.user_repo.get_by_stripe_customer_id.return_value = make_user()
        handler.payment_repo.exists.return_value = True

        outcome = await handler.handle(_event("invoice.payment_succeeded", {
            "id": "in_1", "customer": "cus_1", "amount_paid": 20000,
        }))

        assert outcome == "duplicate"
        handler.membership.record_subscription_payment.assert_not_awaited()


class TestOtherEvents:
    """Payout auditing and unknown types."""

    @pytest.mark.asyncio
    async def test_payout_failure_audited(self, handler):
        outcome = await handler.handle(_event("payout.failed", {
            "id": "po_1", "amount": 1500, "status": "failed",
            "failure_message": "account closed",
        }))

        assert outcome == "audited"
        assert handler.audit.log.await_args.args[0] == AuditEvent.STRIPE_PAYOUT_EVENT
        assert handler.audit.log.await_args.kwargs["details"]["amount_cents"] == 1500

    @pytest.mark.asyncio
    async def test_unknown_type_ignored(self, handler):
        assert await handler.handle(_event("charge.refunded", {})) == "ignored"
