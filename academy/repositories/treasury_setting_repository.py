"""
Treasury setting repository.

Key/value access to treasury configuration.
"""

from sqlalchemy import Integer, String, cast, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from academy.models.treasury_setting import TreasurySetting


class TreasurySettingRepository:
    """Treasury setting repository (string primary key)."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_value(self, key: str) -> str | None:
        """Read a setting value."""
        stmt = select(TreasurySetting.value).where(TreasurySetting.key == key)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def set_value(self, key: str, value: str) -> None:
        """Insert or replace a setting."""
        stmt = insert(TreasurySetting).values(key=key, value=value)
        stmt = stmt.on_conflict_do_update(
            index_elements=[TreasurySetting.key],
            set_={"value": stmt.excluded.value},
        )
        await self.session.execute(stmt)

    async def increment_counter(self, key: str) -> int:
        """
        Atomically increment an integer setting and return the new value.

        The row is created with value 1 the first time.
        """
        stmt = (
            update(TreasurySetting)
            .where(TreasurySetting.key == key)
            .values(value=cast(cast(TreasurySetting.value, Integer) + 1, String))
            .returning(TreasurySetting.value)
        )
        result = await self.session.execute(stmt)
        value = result.scalar_one_or_none()
        if value is not None:
            return int(value)

        insert_stmt = (
            insert(TreasurySetting)
            .values(key=key, value="1")
            .on_conflict_do_nothing(index_elements=[TreasurySetting.key])
        )
        inserted = await self.session.execute(insert_stmt)
        if inserted.rowcount:
            return 1
        # Lost the race with a concurrent first insert
        return await self.increment_counter(key)
