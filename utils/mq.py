"""
Redis helpers: Pub/Sub publisher and snapshot cache, with connection pooling and retries.
"""

import logging
from typing import Any, Optional

import orjson
import redis.asyncio as redis
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from utils.config import settings

logger = logging.getLogger(__name__)

REDIS_ERRORS = (redis.RedisError, redis.ConnectionError, redis.TimeoutError)


class _RedisConnection:
    """Lazily created pooled Redis client."""

    def __init__(self, redis_url: Optional[str] = None) -> None:
        """Initialize connection holder.

        Args:
            redis_url: Redis connection URL, defaults to settings.REDIS_URL
        """
        self.redis_url = redis_url or settings.REDIS_URL
        self.client: Optional[redis.Redis] = None

    async def connect(self) -> None:
        """Establish Redis connection with connection pooling."""
        if self.client is None:
            self.client = redis.from_url(
                self.redis_url,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                decode_responses=False,  # Handle bytes for orjson
            )

    async def close(self) -> None:
        """Close Redis connection and cleanup resources."""
        if self.client:
            await self.client.aclose()
            self.client = None


class RedisPublisher(_RedisConnection):
    """Redis publisher for Pub/Sub events with connection pooling and retries."""

    @retry(
        retry=retry_if_exception_type(REDIS_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
    )
    async def publish(self, channel: str, message: dict[str, Any]) -> None:
        """Publish message to Redis channel with retry logic.

        Args:
            channel: Redis channel name
            message: Message payload dict (will be JSON-serialized)

        Raises:
            redis.RedisError: If publishing fails after retries
        """
        if self.client is None:
            await self.connect()

        await self.client.publish(channel, orjson.dumps(message, default=str))


class SnapshotCache(_RedisConnection):
    """JSON snapshot storage with expiry, read by the dashboard API."""

    @retry(
        retry=retry_if_exception_type(REDIS_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
    )
    async def store(self, key: str, payload: dict[str, Any], ttl_seconds: Optional[int] = None) -> None:
        """Store payload under key, expiring after ttl_seconds (settings.SNAPSHOT_TTL_SECONDS by default).

        Raises:
            redis.RedisError: If the write fails after retries
        """
        if self.client is None:
            await self.connect()

        ttl = ttl_seconds if ttl_seconds is not None else settings.SNAPSHOT_TTL_SECONDS
        await self.client.set(key, orjson.dumps(payload, default=str), ex=ttl or None)

    async def load(self, key: str) -> Optional[dict[str, Any]]:
        """Return the decoded payload, or None when missing or undecodable."""
        if self.client is None:
            await self.connect()

        raw = await self.client.get(key)
        if raw is None:
            return None

        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            logger.warning("Discarding undecodable snapshot: key=%s, error=%s", key, str(e))
            return None
