"""Process-wide Redis connection used by the verification queue.

The API connects once at startup and keeps going without Redis (only
``POST /api/v1/verification`` needs it). The worker cannot do anything
without Redis, so it waits for it with ``init_redis_with_retry``.

    redis = get_redis()
    await VerificationQueue(redis).enqueue(job)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from aid_escrow.config import Settings, get_settings
from aid_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from tenacity import RetryCallState

logger = get_logger(__name__)

# Workers block on BLMOVE for ``queue_poll_timeout_seconds``; the socket
# timeout must stay above it or every idle poll would raise.
_SOCKET_TIMEOUT_PADDING_SECONDS = 5

_client: aioredis.Redis | None = None


def _redacted(url: str) -> str:
    """Drop credentials from a redis:// URL before it is logged."""
    scheme, sep, rest = url.partition("://")
    if "@" in rest:
        rest = rest.split("@", 1)[1]
    return f"{scheme}{sep}{rest}"


async def init_redis(settings: Settings | None = None) -> aioredis.Redis:
    """Connect, PING, and install the client returned by ``get_redis``."""
    global _client
    settings = settings or get_settings()
    url = settings.redis_url
    client = aioredis.from_url(
        url,
        decode_responses=True,
        socket_timeout=settings.queue_poll_timeout_seconds + _SOCKET_TIMEOUT_PADDING_SECONDS,
        health_check_interval=30,
    )
    try:
        await client.ping()
    except Exception:
        await client.aclose()
        raise
    _client = client
    logger.info("redis.connected", url=_redacted(url))
    return client


def _log_retry(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    logger.warning(
        "redis.connect_retry",
        attempt=state.attempt_number,
        error=str(exc) if exc else None,
    )


@retry(
    retry=retry_if_exception_type((RedisConnectionError, RedisTimeoutError, OSError)),
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=1, min=1, max=15),
    before_sleep=_log_retry,
    reraise=True,
)
async def init_redis_with_retry(settings: Settings | None = None) -> aioredis.Redis:
    """``init_redis`` with exponential backoff (worker startup)."""
    return await init_redis(settings)


def get_redis() -> aioredis.Redis:
    """Return the connected client.

    Raises:
        RuntimeError: ``init_redis`` has not succeeded in this process.
    """
    if _client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _client


async def close_redis() -> None:
    global _client
    if _client is None:
        return
    await _client.aclose()
    _client = None
    logger.info("redis.disconnected")
