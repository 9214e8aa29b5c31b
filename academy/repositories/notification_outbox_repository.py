"""
Notification outbox repository.

Data access layer for NotificationOutbox model.
"""

from typing import Any

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from academy.models.notification_outbox import NotificationOutbox
from academy.repositories.base import BaseRepository


class NotificationOutboxRepository(BaseRepository[NotificationOutbox]):
    """Outbox repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize outbox repository."""
        super().__init__(NotificationOutbox, session)

    async def insert_if_absent(self, **values: Any) -> int | None:
        """
        Insert a row unless its idempotency key already exists.

        Returns:
            New row id, or None for a duplicate
        """
        stmt = (
            insert(NotificationOutbox)
            .values(**values)
            .on_conflict_do_nothing(index_elements=[NotificationOutbox.idempotency_key])
            .returning(NotificationOutbox.id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
