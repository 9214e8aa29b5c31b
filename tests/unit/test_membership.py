"""Unit tests for unlocks, renewals and the lapse check."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from academy.models.enums import (
    CommissionType,
    MembershipStatus,
    NotificationType,
    PaymentSchedule,
    PaymentType,
)
from academy.services.membership_service import MembershipService
from academy.services.subscription_monitor import SubscriptionMonitor


@pytest.fixture
def membership(mock_session):
    service = MembershipService(mock_session)
    service.payment_repo = AsyncMock()
    service.payment_repo.create.return_value = SimpleNamespace(id=40)
    service.commission_repo = AsyncMock()
    service.commission_repo.create.return_value = SimpleNamespace(id=41)
    service.placement = AsyncMock()
    service.network = AsyncMock()
    service.qualification = AsyncMock()
    service.qualification.activate_referral.return_value = None
    service.notifications = AsyncMock()
    return service


class TestUnlockMembership:
    """MembershipService.unlock_membership."""

    @pytest.mark.asyncio
    async def test_unlock_places_and_activates(self, membership, make_user):
        user = make_user(id=7, referred_by=3)

        payment = await membership.unlock_membership(
            user, Decimal("499"), polygon_tx_hash="0xabc"
        )

        assert payment.id == 40
        membership.placement.assign_network_position.assert_awaited_once_with(7, 3)
        membership.network.increment_upchain_active_count.assert_awaited_once_with(7)
        assert user.membership_status == MembershipStatus.UNLOCKED
        assert user.is_active is True
        assert user.initial_payment_completed is True
        assert user.last_payment_date is not None
        assert membership.payment_repo.create.await_args.kwargs["payment_type"] == (
            PaymentType.INITIAL
        )

    @pytest.mark.asyncio
    async def test_referrer_gets_direct_bonus(self, membership, make_user):
        user = make_user(id=7, referred_by=3, name="Bea")
        membership.qualification.activate_referral.return_value = make_user(id=3)

        await membership.unlock_membership(user, Decimal("499"))

        kwargs = membership.commission_repo.create.await_args.kwargs
        assert kwargs["commission_type"] == CommissionType.DIRECT_BONUS
        assert kwargs["amount"] == Decimal("249.50")
        assert kwargs["referrer_id"] == 3
        notification = membership.notifications.enqueue.await_args.kwargs
        assert notification["notification_type"] == NotificationType.DIRECT_BONUS
        assert notification["idempotency_key"] == "direct_bonus:41"

    @pytest.mark.asyncio
    async def test_second_unlock_ignored(self, membership, make_user):
        user = make_user(initial_payment_completed=True)

        assert await membership.unlock_membership(user, Decimal("499")) is None
        membership.placement.assign_network_position.assert_not_awaited()
        membership.payment_repo.create.assert_not_awaited()


class TestSubscriptionPayment:
    """MembershipService.record_subscription_payment."""

    @pytest.mark.asyncio
    async def test_reactivation_counts_upchain(self, membership, make_user):
        user = make_user(
            is_active=False,
            initial_payment_completed=True,
            network_position_id="L001P0000000002",
        )

        await membership.record_subscription_payment(
            user, Decimal("49.75"), schedule=PaymentSchedule.WEEKLY
        )

        assert user.is_active is True
        assert user.payment_schedule == PaymentSchedule.WEEKLY
        membership.network.increment_upchain_active_count.assert_awaited_once()
        membership.network.distribute_to_upline.assert_awaited_once_with(
            user.id, Decimal("49.75")
        )
        assert membership.payment_repo.create.await_args.kwargs["payment_type"] == (
            PaymentType.WEEKLY
        )

    @pytest.mark.asyncio
    async def test_active_member_not_recounted(self, membership, make_user):
        user = make_user(is_active=True, network_position_id="L001P0000000002")

        await membership.record_subscription_payment(user, Decimal("199"))

        membership.network.increment_upchain_active_count.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_volume_failure_keeps_payment(self, membership, make_user):
        user = make_user(is_active=True)
        membership.network.distribute_to_upline.side_effect = SQLAlchemyError("deadlock")

        payment = await membership.record_subscription_payment(user, Decimal("199"))

        assert payment.id == 40


class TestSubscriptionMonitor:
    """SubscriptionMonitor.check_lapsed."""

    @pytest.mark.asyncio
    async def test_deactivates_lapsed(self, mock_session, make_user):
        now = datetime(2026, 10, 19, 3, 0, tzinfo=UTC)
        positioned = make_user(
            id=1, is_active=True, network_position_id="L001P0000000001",
            last_payment_date=now - timedelta(days=40),
        )
        unplaced = make_user(id=2, is_active=True)
        monitor = SubscriptionMonitor(mock_session)
        monitor.user_repo = AsyncMock()
        monitor.user_repo.find_lapsed_subscribers.return_value = [positioned, unplaced]
        monitor.network = AsyncMock()
        monitor.notifications = AsyncMock()

        result = await monitor.check_lapsed(now)

        assert result["deactivated"] == 2
        assert result["user_ids"] == [1, 2]
        assert not positioned.is_active and not unplaced.is_active
        monitor.network.decrement_upchain_active_count.assert_awaited_once_with(1)
        cutoffs = monitor.user_repo.find_lapsed_subscribers.await_args.kwargs
        assert cutoffs["monthly_cutoff"] == now - timedelta(days=33)
        assert cutoffs["weekly_cutoff"] == now - timedelta(days=10)
        keys = [c.kwargs["idempotency_key"] for c in monitor.notifications.enqueue.await_args_list]
        assert keys == ["account_inactive:1:2026-10-19", "account_inactive:2:2026-10-19"]
