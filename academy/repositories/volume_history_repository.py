"""
Volume history repository.

Data access layer for VolumeHistory model.
"""

from typing import Any

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from academy.models.volume_history import VolumeHistory
from academy.repositories.base import BaseRepository


class VolumeHistoryRepository(BaseRepository[VolumeHistory]):
    """Volume history repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize volume history repository."""
        super().__init__(VolumeHistory, session)

    async def upsert(self, user_id: int, period: str, **values: Any) -> None:
        """Write a user's snapshot for a period, replacing a previous run."""
        stmt = insert(VolumeHistory).values(user_id=user_id, period=period, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[VolumeHistory.user_id, VolumeHistory.period],
            set_={key: stmt.excluded[key] for key in values},
        )
        await self.session.execute(stmt)
