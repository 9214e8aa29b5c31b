"""
Crypto audit log repository.

Data access layer for CryptoAuditLog model.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.models.crypto_audit_log import CryptoAuditLog
from academy.repositories.base import BaseRepository


class CryptoAuditLogRepository(BaseRepository[CryptoAuditLog]):
    """Audit log repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize audit log repository."""
        super().__init__(CryptoAuditLog, session)

    async def find_recent(
        self, event_type: str | None = None, limit: int = 50
    ) -> list[CryptoAuditLog]:
        """Newest entries first, optionally for one event type."""
        stmt = select(CryptoAuditLog)
        if event_type:
            stmt = stmt.where(CryptoAuditLog.event_type == event_type)
        stmt = stmt.order_by(CryptoAuditLog.created_at.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
