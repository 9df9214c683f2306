"""
Enqueue pipeline.

Reads test-definition files, parses each line and pushes the original
declarative line of every parsed test onto the central Redis job list.
"""

import logging
from typing import Iterable, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from agent.parser import ParseError, TestParser
from shared.config import EnqueueConfig
from shared.models.test import Test

logger = logging.getLogger(__name__)

QUEUE_KEY = "overseer.jobs"

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


class QueueConnectionError(Exception):
    """The queue service did not answer the liveness check."""


def create_redis_client(config: EnqueueConfig) -> redis.Redis:
    """
    Create a Redis client from configuration.

    A configured unix socket takes precedence over the TCP address.
    """
    options = {
        "password": config.redis_password or None,
        "db": config.redis_db,
        "socket_connect_timeout": config.redis_timeout,
        "decode_responses": True,
    }
    if config.redis_socket:
        return redis.Redis(unix_socket_path=config.redis_socket, **options)

    host, port = config.redis_address
    return redis.Redis(host=host, port=port, **options)


class EnqueuePipeline:
    """Pushes parsed tests onto the job queue, one synchronous push per test."""

    def __init__(self, client: redis.Redis, parser: Optional[TestParser] = None,
                 queue_key: str = QUEUE_KEY):
        self.client = client
        self.parser = parser or TestParser()
        self.queue_key = queue_key

    async def ping(self) -> None:
        """
        Check the queue service is reachable.

        Raises:
            QueueConnectionError: If the ping fails
        """
        try:
            await self.client.ping()
        except (RedisError, OSError) as e:
            raise QueueConnectionError(f"Redis connection failed: {e}") from e

    async def enqueue_test(self, test: Test) -> None:
        """Append the test's declarative line to the job list."""
        await self.client.rpush(self.queue_key, test.input)
        logger.debug("Enqueued: %s", test.input)

    async def enqueue_file(self, path: str) -> int:
        """
        Parse a file (``-`` for standard input) and enqueue its tests in order.

        Tests pushed before an error stay queued.

        Returns:
            Number of tests enqueued

        Raises:
            ParseError: On the first invalid line
            OSError: If the file cannot be read
            RedisError: If a push fails
        """
        count = 0
        for test in self.parser.iter_file(path):
            await self.enqueue_test(test)
            count += 1
        return count

    async def run(self, paths: Iterable[str]) -> int:
        """
        Ping the queue, then enqueue every file.

        Files are processed independently; processing stops after standard
        input has been read.

        Returns:
            Process exit status
        """
        try:
            await self.ping()
        except QueueConnectionError as e:
            logger.error(str(e))
            return EXIT_FAILURE

        status = EXIT_SUCCESS
        for path in paths:
            try:
                count = await self.enqueue_file(path)
                logger.info(f"Enqueued {count} test(s) from {path}")
            except ParseError as e:
                logger.error(f"Error parsing file: {e}")
                status = EXIT_FAILURE
            except OSError as e:
                logger.error(f"Error reading file {path}: {e}")
                status = EXIT_FAILURE
            except RedisError as e:
                logger.error(f"Error enqueueing tests from {path}: {e}")
                status = EXIT_FAILURE

            if path == "-":
                break

        return status
