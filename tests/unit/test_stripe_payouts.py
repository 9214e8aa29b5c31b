"""Unit tests for Stripe Connect bulk payouts."""

import hashlib
import hmac
import time
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from stripe import StripeError

from academy.models.commission import Commission
from academy.models.enums import CommissionStatus, CommissionType, NotificationType
from academy.services.payout.stripe_gateway import StripeGateway
from academy.services.payout.stripe_payouts import (
    StripePayoutService,
    month_bounds,
    net_of_fee,
    required_stripe_balance,
    to_cents,
)
from academy.utils.exceptions import PayoutValidationError, WebhookSignatureError


def _commission(cid, referrer_id, amount, status=CommissionStatus.PENDING):
    return Commission(
        id=cid,
        referrer_id=referrer_id,
        commission_type=CommissionType.RESIDUAL_MONTHLY,
        amount=Decimal(amount),
        status=status,
        retry_count=0,
    )


class TestFeeMath:
    """Fee and rounding helpers."""

    def test_net_of_fee(self):
        assert net_of_fee(Decimal("100")) == Decimal("96.500")

    def test_to_cents_rounds_half_up(self):
        assert to_cents(Decimal("240.7675")) == 24077
        assert to_cents(Decimal("0.005")) == 1

    def test_required_balance_includes_per_transfer_fee(self):
        commissions = [_commission(1, 1, "100"), _commission(2, 2, "100")]
        assert required_stripe_balance(commissions) == Decimal("193.50")

    def test_month_bounds(self):
        previous, current = month_bounds(datetime(2026, 3, 15, 12, 30, tzinfo=UTC))
        assert previous == datetime(2026, 2, 1, tzinfo=UTC)
        assert current == datetime(2026, 3, 1, tzinfo=UTC)

    def test_month_bounds_january(self):
        previous, _ = month_bounds(datetime(2026, 1, 5, tzinfo=UTC))
        assert previous == datetime(2025, 12, 1, tzinfo=UTC)


class TestStripeBulkPayout:
    """StripePayoutService.process_stripe_bulk."""

    @pytest.fixture
    def service(self, mock_session, mock_stripe_gateway):
        service = StripePayoutService(mock_session, mock_stripe_gateway)
        service.commission_repo = AsyncMock()
        service.user_repo = AsyncMock()
        service.notifications = AsyncMock()

        async def locked(commission_id):
            selected = service.commission_repo.find_for_stripe_payout.return_value
            return next(c for c in selected if c.id == commission_id)

        service.commission_repo.get_for_update.side_effect = locked
        return service

    @pytest.fixture(autouse=True)
    def audit(self):
        with patch("academy.services.payout.stripe_payouts.AuditService") as audit_cls:
            audit_cls.return_value.log = AsyncMock()
            yield audit_cls.return_value

    @pytest.mark.asyncio
    async def test_pays_net_amount(self, service, mock_stripe_gateway, make_user):
        commission = _commission(1, 10, "249.50")
        service.commission_repo.find_for_stripe_payout.return_value = [commission]
        service.user_repo.find_by_ids.return_value = [
            make_user(id=10, name="Ana", stripe_connect_account_id="acct_1")
        ]

        result = await service.process_stripe_bulk(admin_id=1)

        assert result["successful"] == 1
        kwargs = mock_stripe_gateway.create_transfer.await_args.kwargs
        assert kwargs["amount_cents"] == 24077
        assert kwargs["destination"] == "acct_1"
        assert kwargs["metadata"]["payoutId"] == "1"
        assert commission.status == CommissionStatus.PAID
        assert commission.stripe_transfer_id == "tr_test_1"
        assert result["results"][0]["amount"] == Decimal("240.77")
        notification = service.notifications.enqueue.await_args.kwargs
        assert notification["notification_type"] == NotificationType.PAYOUT_PROCESSED

    @pytest.mark.asyncio
    async def test_insufficient_balance(self, service, mock_stripe_gateway):
        service.commission_repo.find_for_stripe_payout.return_value = [
            _commission(1, 10, "249.50")
        ]
        mock_stripe_gateway.get_available_usd.return_value = Decimal("100")

        with pytest.raises(PayoutValidationError, match="Insufficient Stripe balance"):
            await service.process_stripe_bulk()
        mock_stripe_gateway.create_transfer.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_per_commission_outcomes(self, service, mock_stripe_gateway, make_user):
        already_paid = _commission(1, 10, "50", status=CommissionStatus.PAID)
        no_account = _commission(2, 11, "50")
        unverified = _commission(3, 12, "50")
        rejected = _commission(4, 13, "50")
        service.commission_repo.find_for_stripe_payout.return_value = [
            already_paid, no_account, unverified, rejected,
        ]
        service.user_repo.find_by_ids.return_value = [
            make_user(id=10, stripe_connect_account_id="acct_10"),
            make_user(id=11),
            make_user(id=12, stripe_connect_account_id="acct_12"),
            make_user(id=13, stripe_connect_account_id="acct_13"),
        ]
        mock_stripe_gateway.retrieve_account.side_effect = [
            {"payouts_enabled": False},
            {"payouts_enabled": True},
        ]
        mock_stripe_gateway.create_transfer.side_effect = StripeError("card declined")

        result = await service.process_stripe_bulk()

        assert result["skipped"] == 1
        assert result["failed"] == 3
        errors = [r.get("error") for r in result["results"]]
        assert errors[1] == "No Stripe Connect account"
        assert errors[2] == "Bank account not verified"
        assert errors[3].startswith("Transfer failed")
        assert service.commission_repo.record_failure.await_count == 3

    @pytest.mark.asyncio
    async def test_status_rechecked_under_row_lock(
        self, service, mock_session, mock_stripe_gateway, make_user
    ):
        """A commission paid by a concurrent run is skipped, not paid twice."""
        selected = _commission(1, 10, "100")
        service.commission_repo.find_for_stripe_payout.return_value = [selected]
        service.commission_repo.get_for_update.side_effect = None
        service.commission_repo.get_for_update.return_value = _commission(
            1, 10, "100", status=CommissionStatus.PAID
        )
        service.user_repo.find_by_ids.return_value = [
            make_user(id=10, stripe_connect_account_id="acct_10")
        ]

        result = await service.process_stripe_bulk()

        assert result["skipped"] == 1
        service.commission_repo.get_for_update.assert_awaited_once_with(1)
        mock_stripe_gateway.create_transfer.assert_not_awaited()
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_each_commission_committed(
        self, service, mock_session, mock_stripe_gateway, make_user
    ):
        service.commission_repo.find_for_stripe_payout.return_value = [
            _commission(1, 10, "100"),
            _commission(2, 11, "100"),
        ]
        service.user_repo.find_by_ids.return_value = [
            make_user(id=10, stripe_connect_account_id="acct_10"),
            make_user(id=11, stripe_connect_account_id="acct_11"),
        ]

        result = await service.process_stripe_bulk()

        assert result["successful"] == 2
        assert mock_session.commit.await_count == 2

    @pytest.mark.asyncio
    async def test_nothing_to_pay(self, service, mock_stripe_gateway):
        service.commission_repo.find_for_stripe_payout.return_value = []

        result = await service.process_stripe_bulk()

        assert result["total"] == 0
        mock_stripe_gateway.get_available_usd.assert_not_awaited()


class TestStripeGateway:
    """Webhook signature verification."""

    SECRET = "whsec_unit"

    def _header(self, payload: bytes, secret: str) -> str:
        timestamp = int(time.time())
        signed = f"{timestamp}.".encode() + payload
        digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={digest}"

    def test_valid_signature(self):
        payload = b'{"id": "evt_1", "object": "event", "type": "payout.paid"}'
        gateway = StripeGateway(api_key="sk_test", webhook_secret=self.SECRET)

        event = gateway.construct_event(payload, self._header(payload, self.SECRET))

        assert event["type"] == "payout.paid"

    def test_wrong_secret(self):
        payload = b'{"id": "evt_1", "object": "event", "type": "payout.paid"}'
        gateway = StripeGateway(api_key="sk_test", webhook_secret=self.SECRET)

        with pytest.raises(WebhookSignatureError, match="Invalid Stripe signature"):
            gateway.construct_event(payload, self._header(payload, "whsec_other"))

    def test_missing_header(self):
        gateway = StripeGateway(api_key="sk_test", webhook_secret=self.SECRET)

        with pytest.raises(WebhookSignatureError, match="Missing"):
            gateway.construct_event(b"{}", None)
