"""
Document processing worker.

Usage:
  python -m ragcore.workers

Required env: DATABASE_URL, QDRANT_URL, EMBEDDING_* (or OPENAI_API_KEY).
Optional: REDIS_URL (shared queue + progress cache), WORKER_CONCURRENCY,
RAGCORE_FILES_DIR (base directory for relative document paths),
RAG_TASK_STALE_SECONDS / RAG_STALE_SWEEP_INTERVAL (stale task sweeper).
"""
from __future__ import annotations

import asyncio
import os
import signal
import sys

from ragcore.bootstrap import Container
from ragcore.core.exceptions import ConfigurationError
from ragcore.core.logger import LoggerConfig, configure, get_logger
from ragcore.workers.consumer import DocumentProcessingConsumer
from ragcore.workers.sweeper import StaleTaskSweeper


async def main() -> int:
    configure(LoggerConfig.from_env())
    logger = get_logger(__name__)

    try:
        container = Container.from_env(files_dir=os.environ.get("RAGCORE_FILES_DIR") or None)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return 1

    consumer = DocumentProcessingConsumer(
        container.channel,
        container.ingestion,
        concurrency=int(os.environ.get("WORKER_CONCURRENCY", "0")),
    )
    sweeper = StaleTaskSweeper(
        container.tasks,
        stale_after=container.rag_config.task_stale_seconds,
        interval=container.rag_config.stale_sweep_interval,
    )

    def _shutdown() -> None:
        sweeper.stop()
        asyncio.ensure_future(consumer.stop())

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _shutdown)
        except NotImplementedError:
            # no signal handlers on Windows event loops
            pass

    try:
        await container.prepare()
        sweeping = asyncio.create_task(sweeper.run())
        try:
            await consumer.run()
        finally:
            sweeper.stop()
            await sweeping
    finally:
        await container.aclose()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
