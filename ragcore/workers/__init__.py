"""Background workers: the document processing consumer and the stale task sweeper."""
from ragcore.workers.consumer import DocumentProcessingConsumer
from ragcore.workers.sweeper import StaleTaskSweeper

__all__ = ["DocumentProcessingConsumer", "StaleTaskSweeper"]
