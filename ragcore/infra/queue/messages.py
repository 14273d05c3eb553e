"""Queue message formats."""
from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ragcore.core.exceptions import ValidationError


@dataclass(frozen=True)
class DocumentProcessingMessage:
    document_id: uuid.UUID
    task_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    processing_type: str = "full"
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(
            {
                "document_id": str(self.document_id),
                "task_id": str(self.task_id),
                "user_id": str(self.user_id) if self.user_id else None,
                "processing_type": self.processing_type,
                "metadata": self.metadata,
            },
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> "DocumentProcessingMessage":
        try:
            data = json.loads(raw)
            return cls(
                document_id=uuid.UUID(data["document_id"]),
                task_id=uuid.UUID(data["task_id"]),
                user_id=uuid.UUID(data["user_id"]) if data.get("user_id") else None,
                processing_type=data.get("processing_type") or "full",
                metadata=data.get("metadata") or {},
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise ValidationError("Malformed processing message", cause=exc) from exc
