"""Generic async repository for SQLAlchemy 2.0."""
from __future__ import annotations

from typing import Any, ClassVar, Generic, List, Optional, TypeVar
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    model: ClassVar[type]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, id: UUID) -> Optional[ModelT]:
        return await self.session.get(self.model, id)  # type: ignore[return-value]

    async def create(self, data: dict[str, Any]) -> ModelT:
        instance = self.model(**data)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance  # type: ignore[return-value]

    async def bulk_create(self, items: List[dict[str, Any]]) -> List[ModelT]:
        instances = [self.model(**d) for d in items]
        self.session.add_all(instances)
        await self.session.flush()
        return instances  # type: ignore[return-value]

    async def delete_where(self, *criteria: Any) -> int:
        result = await self.session.execute(delete(self.model).where(*criteria))
        return result.rowcount or 0
