"""
Redis Connection Management

Shared Redis client used by the rate limiter, plus a health probe for /health.
"""

import os
import time
from dataclasses import dataclass
from typing import Optional

from redis import ConnectionPool, Redis
from redis.exceptions import ConnectionError, TimeoutError


# Module-level connection pool singleton
_connection_pool: Optional[ConnectionPool] = None


def get_redis_url() -> str:
    """Get Redis URL from environment variable (default redis://localhost:6379/0)."""
    return os.environ.get("REDIS_URL", "redis://localhost:6379/0")


def get_connection_pool() -> ConnectionPool:
    """Get or create the Redis connection pool singleton."""
    global _connection_pool

    if _connection_pool is None:
        _connection_pool = ConnectionPool.from_url(
            get_redis_url(),
            max_connections=10,
            decode_responses=True,
        )

    return _connection_pool


def get_redis_connection() -> Redis:
    """
    Get a Redis connection from the connection pool.

    Example:
        >>> redis = get_redis_connection()
        >>> redis.incr("ratelimit:anon:127.0.0.1:analyze")
        1
    """
    return Redis(connection_pool=get_connection_pool())


@dataclass
class RedisHealthStatus:
    """Health status for Redis connection."""
    healthy: bool
    latency_ms: Optional[float] = None
    error: Optional[str] = None


def check_redis_health(timeout: float = 5.0) -> RedisHealthStatus:
    """
    Check the health of the Redis connection with a timed PING.

    Args:
        timeout: Connection timeout in seconds
    """
    try:
        client = Redis.from_url(
            get_redis_url(),
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
            decode_responses=True,
        )

        start = time.perf_counter()
        pong = client.ping()
        latency_ms = (time.perf_counter() - start) * 1000

        if not pong:
            return RedisHealthStatus(healthy=False, error="PING returned False")

        return RedisHealthStatus(healthy=True, latency_ms=round(latency_ms, 2))

    except ConnectionError as e:
        return RedisHealthStatus(healthy=False, error=f"Connection failed: {e}")
    except TimeoutError as e:
        return RedisHealthStatus(healthy=False, error=f"Connection timeout: {e}")


def close_connection_pool() -> None:
    """Close and reset the connection pool (shutdown and tests)."""
    global _connection_pool

    if _connection_pool is not None:
        _connection_pool.disconnect()
        _connection_pool = None
