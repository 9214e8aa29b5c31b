"""Unit tests for the notification outbox writer."""

from unittest.mock import AsyncMock

import pytest

from academy.models.enums import NotificationStatus, NotificationType
from academy.services.notification_service import NotificationService


@pytest.fixture
def service(mock_session):
    service = NotificationService(mock_session)
    service.repo = AsyncMock()
    return service


class TestEnqueue:
    """Idempotent enqueue."""

    @pytest.mark.asyncio
    async def test_new_notification(self, service):
        service.repo.insert_if_absent.return_value = 14

        queued = await service.enqueue(
            3, NotificationType.PAYOUT_PROCESSED, {"amount": "199.00"}, "payout_processed:88"
        )

        assert queued is True
        kwargs = service.repo.insert_if_absent.await_args.kwargs
        assert kwargs["channel"] == "email"
        assert kwargs["status"] == NotificationStatus.PENDING
        assert kwargs["retry_count"] == 0
        assert kwargs["idempotency_key"] == "payout_processed:88"

    @pytest.mark.asyncio
    async def test_duplicate_key(self, service):
        service.repo.insert_if_absent.return_value = None

        queued = await service.enqueue(
            3, NotificationType.PAYOUT_PROCESSED, {}, "payout_processed:88", channel="sms"
        )

        assert queued is False
