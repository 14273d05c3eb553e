"""Repository for DocumentTask."""
from __future__ import annotations

from datetime import datetime
from typing import ClassVar, List, Optional
from uuid import UUID

from sqlalchemy import or_, select

from ragcore.infra.database.models.task import DocumentTask
from ragcore.infra.database.repositories.base import BaseRepository


class DocumentTaskRepository(BaseRepository[DocumentTask]):
    model: ClassVar[type] = DocumentTask

    async def get_for_update(self, task_id: UUID) -> Optional[DocumentTask]:
        """Row-locked read; the lock is held until the surrounding transaction ends."""
        stmt = select(DocumentTask).where(DocumentTask.id == task_id).with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_document_id(self, document_id: UUID) -> List[DocumentTask]:
        stmt = (
            select(DocumentTask)
            .where(DocumentTask.document_id == document_id)
            .order_by(DocumentTask.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_failed_below_max_retries(self, limit: int = 100) -> List[DocumentTask]:
        stmt = (
            select(DocumentTask)
            .where(
                DocumentTask.status == "failed",
                DocumentTask.retry_count < DocumentTask.max_retries,
            )
            .order_by(DocumentTask.created_at.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_stale_processing(self, cutoff: datetime, limit: int = 100) -> List[DocumentTask]:
        # updated_at is bumped on every progress write
        stmt = (
            select(DocumentTask)
            .where(
                DocumentTask.status == "processing",
                DocumentTask.updated_at < cutoff,
                or_(DocumentTask.started_at.is_(None), DocumentTask.started_at < cutoff),
            )
            .order_by(DocumentTask.updated_at.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
