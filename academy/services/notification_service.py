"""
Notification service.

Enqueues member notifications into the outbox. Delivery workers (SMS and
e-mail) consume the outbox separately.
"""

from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config.constants import NOTIFICATION_MAX_RETRIES
from academy.models.enums import NotificationStatus
from academy.repositories.notification_outbox_repository import (
    NotificationOutboxRepository,
)


class NotificationService:
    """Outbox writer."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = NotificationOutboxRepository(session)

    async def enqueue(
        self,
        user_id: int,
        notification_type: str,
        data: dict[str, Any],
        idempotency_key: str,
        channel: str = "email",
    ) -> bool:
        """
        Queue a notification once per idempotency key.

        Args:
            user_id: Recipient
            notification_type: One of NotificationType
            data: Template variables
            idempotency_key: Unique key; repeats are ignored
            channel: email or sms

        Returns:
            True if a new row was queued
        """
        row_id = await self.repo.insert_if_absent(
            user_id=user_id,
            notification_type=notification_type,
            channel=channel,
            data=data,
            status=NotificationStatus.PENDING,
            idempotency_key=idempotency_key,
            retry_count=0,
            max_retries=NOTIFICATION_MAX_RETRIES,
        )
        if row_id is None:
            logger.debug(f"Notification {idempotency_key} already queued")
            return False

        logger.info(
            f"Queued {notification_type} notification for user {user_id}",
            extra={"outbox_id": row_id},
        )
        return True
