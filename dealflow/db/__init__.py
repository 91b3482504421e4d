"""Database package: shared Redis pool for engine-owned local state."""

from dealflow.db.redis import close_redis, get_redis, init_redis

__all__ = [
    "close_redis",
    "get_redis",
    "init_redis",
]
