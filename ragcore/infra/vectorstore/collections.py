"""Payload schema, collection setup, payload builder."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from qdrant_client.models import PayloadSchemaType

from ragcore.core.exceptions import VectorstoreError
from ragcore.infra.vectorstore.client import QdrantManager

if TYPE_CHECKING:
    from ragcore.config import QdrantConfig

logger = logging.getLogger(__name__)


class PayloadField:
    DOCUMENT_ID = "document_id"
    USER_ID = "user_id"
    CHUNK_INDEX = "chunk_index"
    CHUNK_KIND = "chunk_kind"
    CONTENT = "content"
    TITLE = "title"
    SOURCE_TYPE = "type"
    TIMESTAMP = "timestamp"
    TOKEN_COUNT = "token_count"
    SECTION_TITLE = "section_title"
    SECTION_LEVEL = "section_level"


CHUNK_PAYLOAD_SCHEMA: Dict[str, PayloadSchemaType] = {
    PayloadField.DOCUMENT_ID: PayloadSchemaType.KEYWORD,
    PayloadField.USER_ID: PayloadSchemaType.KEYWORD,
    PayloadField.CHUNK_INDEX: PayloadSchemaType.INTEGER,
    PayloadField.CHUNK_KIND: PayloadSchemaType.KEYWORD,
    PayloadField.SOURCE_TYPE: PayloadSchemaType.KEYWORD,
    PayloadField.TIMESTAMP: PayloadSchemaType.INTEGER,
}


async def ensure_collection_exists(manager: QdrantManager, config: "QdrantConfig") -> str:
    """Create the chunk collection and its filterable payload indexes if missing."""
    name = config.collection_name
    if await manager.collection_exists(name):
        return name
    logger.info("Creating collection '%s' vector_size=%d distance=%s", name, config.vector_size, config.distance)
    await manager.create_collection(name, vector_size=config.vector_size, distance=config.distance)
    for field_name, schema in CHUNK_PAYLOAD_SCHEMA.items():
        try:
            await manager.create_payload_index(name, field_name, schema)
        except VectorstoreError as exc:
            logger.warning("Payload index '%s' on '%s' not created: %s", field_name, name, exc)
    return name


def build_chunk_payload(
    *,
    document_id: str,
    user_id: Optional[str],
    chunk_index: int,
    chunk_kind: str,
    content: str,
    title: str,
    source_type: str,
    timestamp: int,
    token_count: int,
    section_title: Optional[str] = None,
    section_level: Optional[int] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        PayloadField.DOCUMENT_ID: document_id,
        PayloadField.CHUNK_INDEX: chunk_index,
        PayloadField.CHUNK_KIND: chunk_kind,
        PayloadField.CONTENT: content,
        PayloadField.TITLE: title,
        PayloadField.SOURCE_TYPE: source_type,
        PayloadField.TIMESTAMP: timestamp,
        PayloadField.TOKEN_COUNT: token_count,
    }
    if user_id is not None:
        payload[PayloadField.USER_ID] = user_id
    if section_title is not None:
        payload[PayloadField.SECTION_TITLE] = section_title
        payload[PayloadField.SECTION_LEVEL] = section_level
    return payload
