"""Generic key-value DAO over a ``(key, data, timestamp)`` cache table."""

from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.ext.asyncio import AsyncSession

from starlens.core.database import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseDAO(Generic[ModelT]):
    """Base data-access object. Subclasses set ``model`` and ``key_column``."""

    model: type[ModelT]
    key_column: str

    @staticmethod
    def _require_key(key: str) -> None:
        """Raise ValueError if *key* is empty."""
        if not key:
            raise ValueError("cache key must not be empty")

    async def get_by_key(self, session: AsyncSession, key: str) -> ModelT | None:
        self._require_key(key)
        column = getattr(self.model, self.key_column)
        result = await session.execute(select(self.model).where(column == key))
        return result.scalar_one_or_none()

    async def upsert(
        self, session: AsyncSession, key: str, data: str, timestamp: int
    ) -> None:
        """Insert or overwrite the row for *key* (last write wins)."""
        self._require_key(key)
        values: dict[str, Any] = {self.key_column: key, "data": data, "timestamp": timestamp}
        stmt = insert(self.model).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[self.key_column],
            set_={"data": stmt.excluded.data, "timestamp": stmt.excluded.timestamp},
        )
        await session.execute(stmt)
