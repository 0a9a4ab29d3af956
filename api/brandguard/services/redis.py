from __future__ import annotations

import logging
import threading
from typing import Optional

import redis
from redis.connection import ConnectionPool
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from ..core.config import settings

logger = logging.getLogger(__name__)

_pool: Optional[ConnectionPool] = None
_pool_lock = threading.Lock()


def _create_connection_pool() -> ConnectionPool:
    return ConnectionPool.from_url(
        settings.redis_url,
        max_connections=50,
        retry_on_timeout=True,
        health_check_interval=30,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )


def get_client() -> redis.Redis:
    """Redis client on a shared, lazily created connection pool."""
    global _pool
    if _pool is None:
        with _pool_lock:
            if _pool is None:
                _pool = _create_connection_pool()
                logger.info("Redis connection pool initialized")
    return redis.Redis(connection_pool=_pool)


def ping() -> bool:
    try:
        return bool(get_client().ping())
    except (ConnectionError, TimeoutError, RedisError) as e:
        logger.warning(f"Redis ping failed: {e}")
        return False


def cleanup() -> None:
    """Disconnect the pool; the next `get_client` builds a new one."""
    global _pool
    with _pool_lock:
        if _pool is not None:
            try:
                _pool.disconnect(inuse_connections=True)
            except RedisError as e:
                logger.error(f"Error cleaning up Redis pool: {e}")
            finally:
                _pool = None
