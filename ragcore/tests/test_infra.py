"""Unit tests for queue messages, channels, progress caches and config."""
from __future__ import annotations

import asyncio
import json
import logging
import os
import unittest
import uuid
from unittest.mock import AsyncMock, MagicMock, patch

from redis.exceptions import ConnectionError as RedisConnectionError

from ragcore.config.rag import RAGConfig
from ragcore.config.redis import RedisConfig
from ragcore.core.exceptions import (
    ExternalServiceError,
    ExtractionError,
    QueueError,
    UnsupportedFileTypeError,
    ValidationError,
)
from ragcore.core.logger import JsonFormatter
from ragcore.infra.cache import LocalProgressCache, RedisProgressCache
from ragcore.infra.queue import DocumentProcessingMessage, RedisChannel


class TestErrors(unittest.TestCase):
    def test_defaults_and_overrides(self) -> None:
        err = UnsupportedFileTypeError("Unsupported file type: .xlsx", details={"file": "a.xlsx"})
        self.assertIsInstance(err, ExtractionError)
        self.assertEqual((err.code, err.http_status), ("UNSUPPORTED_FILE_TYPE", 415))
        self.assertEqual(ExtractionError("x", code="PDF_LOCKED").code, "PDF_LOCKED")

    def test_factory_types(self) -> None:
        self.assertTrue(issubclass(QueueError, ExternalServiceError))
        err = QueueError("enqueue failed", cause=ConnectionRefusedError("refused"))
        payload = err.to_dict()
        self.assertEqual(payload["type"], "QueueError")
        self.assertEqual(payload["code"], "QUEUE_ERROR")
        self.assertEqual(payload["cause"], "ConnectionRefusedError: refused")
        self.assertNotIn("cause_traceback", payload)
        self.assertIn("cause_traceback", err.to_dict(include_traceback=True))


class TestJsonFormatter(unittest.TestCase):
    def test_extra_fields_are_grouped(self) -> None:
        record = logging.LogRecord("ragcore.services", logging.WARNING, __file__, 10, "stage %s failed", ("index",), None)
        record.task_id = "t-1"
        line = json.loads(JsonFormatter().format(record))
        self.assertEqual(line["message"], "stage index failed")
        self.assertEqual(line["level"], "WARNING")
        self.assertEqual(line["extra"], {"task_id": "t-1"})
        self.assertNotIn("extra", json.loads(JsonFormatter(include_extra=False).format(record)))


class TestMessages(unittest.TestCase):
    def test_json_keeps_metadata(self) -> None:
        message = DocumentProcessingMessage(
            document_id=uuid.uuid4(), task_id=uuid.uuid4(), metadata={"retry_count": 2}
        )
        parsed = DocumentProcessingMessage.from_json(message.to_json())
        self.assertEqual(parsed, message)
        self.assertIsNone(parsed.user_id)

    def test_malformed_payloads(self) -> None:
        for raw in ("not json", '{"task_id": "x"}', '{"document_id": "nope", "task_id": "nope"}', "[]"):
            with self.subTest(raw=raw), self.assertRaises(ValidationError):
                DocumentProcessingMessage.from_json(raw)


class TestRedisChannel(unittest.TestCase):
    def _message(self) -> DocumentProcessingMessage:
        return DocumentProcessingMessage(document_id=uuid.uuid4(), task_id=uuid.uuid4())

    def test_send_failure_is_a_queue_error(self) -> None:
        redis = MagicMock()
        redis.lpush = AsyncMock(side_effect=RedisConnectionError("refused"))
        channel = RedisChannel(redis, "jobs")
        with self.assertRaises(QueueError):
            asyncio.run(channel.send(self._message()))

    def test_malformed_delivery_is_dropped(self) -> None:
        good = self._message()
        redis = MagicMock()
        redis.blmove = AsyncMock(side_effect=[None, b"garbage", good.to_json().encode()])
        redis.lrem = AsyncMock(return_value=1)
        channel = RedisChannel(redis, "jobs", block_timeout=1)

        async def first():
            async for delivery in channel.receive():
                return delivery

        delivery = asyncio.run(first())
        self.assertEqual(delivery.message, good)
        redis.lrem.assert_awaited_once_with("jobs:processing", 1, "garbage")

        asyncio.run(channel.ack(delivery))
        redis.lrem.assert_awaited_with("jobs:processing", 1, delivery.raw)

    def test_failed_drop_of_malformed_delivery_keeps_receiving(self) -> None:
        good = self._message()
        redis = MagicMock()
        redis.blmove = AsyncMock(side_effect=[b"garbage", good.to_json().encode()])
        redis.lrem = AsyncMock(side_effect=RedisConnectionError("reset"))
        channel = RedisChannel(redis, "jobs", block_timeout=1)

        async def first():
            async for delivery in channel.receive():
                return delivery

        with self.assertLogs("ragcore.infra.queue.channel", level="WARNING"):
            delivery = asyncio.run(first())
        self.assertEqual(delivery.message, good)
        redis.lrem.assert_awaited_once_with("jobs:processing", 1, "garbage")

    def test_recover_requeues_unacked(self) -> None:
        redis = MagicMock()
        redis.lmove = AsyncMock(side_effect=[b"a", b"b", None])
        self.assertEqual(asyncio.run(RedisChannel(redis, "jobs").recover()), 2)


class TestProgressCaches(unittest.TestCase):
    def test_local_cache_expires(self) -> None:
        ticks = iter([100.0, 105.0, 111.0])
        cache = LocalProgressCache(ttl_seconds=10, clock=lambda: next(ticks))
        task_id = uuid.uuid4()
        asyncio.run(cache.set_progress(task_id, 40))
        self.assertEqual(asyncio.run(cache.get_progress(task_id)), 40)
        self.assertIsNone(asyncio.run(cache.get_progress(task_id)))
        self.assertEqual(cache.size, 0)

    def test_local_cache_evicts_least_recent(self) -> None:
        cache = LocalProgressCache(max_size=2)
        a, b, c = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()

        async def scenario():
            await cache.set_status(a, "pending")
            await cache.set_status(b, "pending")
            await cache.get_status(a)
            await cache.set_status(c, "running")
            return [await cache.get_status(t) for t in (a, b, c)]

        self.assertEqual(asyncio.run(scenario()), ["pending", None, "running"])

    def test_redis_cache_writes_with_ttl(self) -> None:
        redis = MagicMock()
        redis.set = AsyncMock()
        redis.get = AsyncMock(return_value=b"60")
        cache = RedisProgressCache(redis, ttl_seconds=86400, key_prefix="rc:")
        task_id = uuid.uuid4()
        asyncio.run(cache.set_progress(task_id, 60))
        redis.set.assert_awaited_once_with(f"rc:task:progress:{task_id}", "60", ex=86400)
        self.assertEqual(asyncio.run(cache.get_progress(task_id)), 60)

    def test_redis_outage_reads_as_miss(self) -> None:
        redis = MagicMock()
        redis.get = AsyncMock(side_effect=RedisConnectionError("down"))
        redis.set = AsyncMock(side_effect=RedisConnectionError("down"))
        cache = RedisProgressCache(redis)
        task_id = uuid.uuid4()
        asyncio.run(cache.set_status(task_id, "running"))
        self.assertIsNone(asyncio.run(cache.get_status(task_id)))

    def test_redis_malformed_progress_is_a_miss(self) -> None:
        redis = MagicMock()
        redis.get = AsyncMock(return_value=b"lots")
        self.assertIsNone(asyncio.run(RedisProgressCache(redis).get_progress(uuid.uuid4())))


class TestConfig(unittest.TestCase):
    def test_rag_defaults(self) -> None:
        cfg = RAGConfig()
        self.assertEqual((cfg.chunk_size, cfg.chunk_overlap), (500, 100))
        self.assertEqual((cfg.vector_weight, cfg.text_weight), (0.6, 0.4))
        self.assertEqual(cfg.index_batch_size, 10)
        self.assertEqual(cfg.max_retries, 3)
        self.assertEqual((cfg.task_stale_seconds, cfg.stale_sweep_interval), (1800, 300))

    def test_rag_overlap_must_be_smaller_than_chunk(self) -> None:
        with self.assertRaises(ValueError):
            RAGConfig(chunk_size=100, chunk_overlap=100)

    def test_rag_from_env(self) -> None:
        env = {"RAG_CHUNK_SIZE": "800", "RAG_ENABLE_RERANK": "false", "RAG_VECTOR_WEIGHT": "0.7"}
        with patch.dict(os.environ, env):
            cfg = RAGConfig.from_env(chunk_overlap=50)
        self.assertEqual(cfg.chunk_size, 800)
        self.assertFalse(cfg.enable_rerank)
        self.assertEqual(cfg.vector_weight, 0.7)
        self.assertEqual(cfg.chunk_overlap, 50)

    def test_redis_url_scheme(self) -> None:
        with self.assertRaises(ValueError):
            RedisConfig(url="http://localhost:6379")
        self.assertFalse(RedisConfig().enabled)
        cfg = RedisConfig(url="redis://localhost:6379/0")
        self.assertTrue(cfg.enabled)
        self.assertEqual(cfg.task_ttl_seconds, 24 * 3600)


if __name__ == "__main__":
    unittest.main()
