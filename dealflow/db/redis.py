"""Shared Redis client for engine-owned local state (usage sets, preference hashes).

The client is process-wide but holds no account data itself; every key the
engine writes is namespaced by account id.
"""

import redis.asyncio as redis
import structlog

from dealflow.core.config import Settings, get_settings

logger = structlog.get_logger(__name__)

_client: redis.Redis | None = None


def build_client(url: str | None = None, settings: Settings | None = None) -> redis.Redis:
    """Create a decoding Redis client from an explicit URL or the settings."""
    settings = settings or get_settings()
    return redis.from_url(
        url or settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )


async def init_redis(url: str | None = None) -> redis.Redis:
    """Connect the shared client once and verify it answers PING.

    Raises:
        redis.RedisError: the server is unreachable (the client is not kept)
    """
    global _client

    if _client is not None:
        return _client

    client = build_client(url)
    try:
        await client.ping()
    except redis.RedisError:
        await client.aclose()
        logger.error("redis_connect_failed", exc_info=True)
        raise

    _client = client
    logger.info("redis_connected")
    return _client


async def close_redis() -> None:
    global _client

    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    """Return the shared client.

    Raises RuntimeError if init_redis() has not been called.
    """
    if _client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _client
