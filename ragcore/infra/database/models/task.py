"""Processing task rows. Never deleted; retries reset the row in place."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from ragcore.infra.database.models.base import Base, TimestampMixin, _uuid_pk


class DocumentTask(Base, TimestampMixin):
    __tablename__ = "document_tasks"
    __table_args__ = (
        Index("ix_document_tasks_document_id", "document_id"),
        Index("ix_document_tasks_status", "status"),
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_document_tasks_progress"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    document_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    task_type: Mapped[str] = mapped_column(String(32), nullable=False, default="document_processing")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_retries: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"DocumentTask(id={self.id!r}, status={self.status!r}, progress={self.progress})"
