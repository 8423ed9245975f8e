"""
Snapshot Publisher for Refresher Service

Caches each refreshed snapshot in Redis and announces it on Redis Pub/Sub.

Features:
- Snapshot cache with expiry via production wrapper
- Automatic connection management and retries
- JSON message serialization
- Structured logging

Usage:
    from apps.refresher.publisher import cache_snapshot, publish_refresh_event

    key = await cache_snapshot(snapshot)
    await publish_refresh_event(snapshot, key)
"""

import logging
from typing import Optional

from apps.refresher.refresh_job import snapshot_payload
from utils.config import settings
from utils.mq import RedisPublisher, SnapshotCache
from utils.schemas import RefreshEvent, WhosOnSnapshot

logger = logging.getLogger(__name__)


async def cache_snapshot(snapshot: WhosOnSnapshot, key: Optional[str] = None) -> str:
    """
    Store the snapshot envelope in Redis.

    Args:
        snapshot: Refreshed who's-on snapshot
        key: Redis key, defaults to settings.REDIS_SNAPSHOT_KEY

    Returns:
        The key written

    Raises:
        redis.RedisError: If the write fails
    """
    key = key or settings.REDIS_SNAPSHOT_KEY
    cache = SnapshotCache()

    try:
        await cache.store(key, snapshot_payload(snapshot), settings.SNAPSHOT_TTL_SECONDS)
        logger.info(
            "Cached snapshot",
            extra={"key": key, "ttl_seconds": settings.SNAPSHOT_TTL_SECONDS},
        )
    finally:
        await cache.close()

    return key


async def publish_refresh_event(snapshot: WhosOnSnapshot, key: Optional[str] = None) -> None:
    """
    Publish a snapshot_refreshed event to the refresh channel.

    Args:
        snapshot: Refreshed who's-on snapshot
        key: Redis key holding the snapshot

    Raises:
        redis.RedisError: If publishing fails
    """
    publisher = RedisPublisher()

    try:
        event = RefreshEvent(
            key=key or settings.REDIS_SNAPSHOT_KEY,
            partial=snapshot.partial,
            metrics=snapshot.metrics.model_dump(),
        )

        await publisher.publish(settings.REDIS_CHANNEL_REFRESH, event.model_dump(mode="json"))

        logger.info(
            "Published refresh event",
            extra={
                "channel": settings.REDIS_CHANNEL_REFRESH,
                "key": event.key,
                "partial": event.partial,
            },
        )

    except Exception as e:
        logger.error(
            "Failed to publish refresh event",
            extra={"channel": settings.REDIS_CHANNEL_REFRESH, "error": str(e)},
            exc_info=True,
        )
        raise

    finally:
        await publisher.close()
