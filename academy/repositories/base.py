"""
Base repository.

Lookups, inserts and set-based updates shared by the aggregate
repositories. Aggregates add their own queries on top.
"""

from collections.abc import Iterable
from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from academy.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository over one model.

    Example:
        class PaymentRepository(BaseRepository[Payment]):
            def __init__(self, session: AsyncSession):
                super().__init__(Payment, session)
    """

    def __init__(self, model: type[ModelType], session: AsyncSession) -> None:
        self.model = model
        self.session = session

    async def get_by_id(self, id: int) -> ModelType | None:
        """Row by primary key (identity map first)."""
        return await self.session.get(self.model, id)

    async def get_by(self, **filters: Any) -> ModelType | None:
        """Single row by column equality; None when absent."""
        result = await self.session.execute(select(self.model).filter_by(**filters))
        return result.scalar_one_or_none()

    async def create(self, **data: Any) -> ModelType:
        """
        Insert a row.

        Flushed and refreshed so that server defaults and the primary key
        are available to the caller inside the same transaction.
        """
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def count(self, **filters: Any) -> int:
        stmt = select(func.count()).select_from(self.model).filter_by(**filters)
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def exists(self, **filters: Any) -> bool:
        return await self.count(**filters) > 0

    async def update_where(self, *criteria: ColumnElement[bool], **values: Any) -> int:
        """
        Single `UPDATE ... WHERE` without loading rows.

        Values may be SQL expressions (e.g. `Model.counter + 1`).

        Returns:
            Number of rows matched
        """
        stmt = update(self.model).where(*criteria).values(**values)
        result = await self.session.execute(stmt)
        return result.rowcount

    async def update_ids(self, ids: Iterable[int], **values: Any) -> int:
        """update_where over a set of primary keys; no-op for an empty set."""
        id_list = list(ids)
        if not id_list:
            return 0
        return await self.update_where(self.model.id.in_(id_list), **values)
