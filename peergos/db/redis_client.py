"""
Redis connection for the ``redis`` storage backend.

One pool per process, shared by every ``RedisBackend``. Stored values are
JSON envelopes (or Fernet tokens), so responses are decoded to ``str``.
"""
import logging

import redis
from redis.connection import ConnectionPool

from peergos.core.config import settings
from peergos.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_client: redis.Redis | None = None


def _build_pool(url: str) -> ConnectionPool:
    return ConnectionPool.from_url(
        url,
        max_connections=settings.REDIS_MAX_CONNECTIONS,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
        socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
        retry_on_timeout=True,
        health_check_interval=30,
        decode_responses=True,
    )


def get_redis_client() -> redis.Redis:
    """Shared client; the first call connects and pings.

    Raises:
        ConfigurationError: REDIS_URL is empty or the server is unreachable.
    """
    global _client
    if _client is not None:
        return _client

    if not settings.REDIS_URL:
        raise ConfigurationError("REDIS_URL")

    client = redis.Redis(connection_pool=_build_pool(settings.REDIS_URL))
    try:
        client.ping()
    except redis.RedisError as e:
        logger.error("Redis unreachable for storage backend: %s", e)
        client.connection_pool.disconnect()
        raise ConfigurationError("REDIS_URL", "server unreachable") from e

    logger.info("Redis storage backend connected (max_connections=%d)", settings.REDIS_MAX_CONNECTIONS)
    _client = client
    return _client


def close_redis_client() -> None:
    """Release the shared pool. Called when a session host shuts down."""
    global _client
    if _client is None:
        return
    _client.connection_pool.disconnect()
    _client.close()
    _client = None
    logger.info("Redis storage backend closed")
