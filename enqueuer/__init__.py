"""Enqueue parsed test definitions onto the central job queue."""

from .pipeline import (
    QUEUE_KEY, EnqueuePipeline, QueueConnectionError, create_redis_client
)

__all__ = [
    "QUEUE_KEY",
    "EnqueuePipeline",
    "QueueConnectionError",
    "create_redis_client",
]
