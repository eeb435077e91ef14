"""Redis connection and fixed-window rate limiting."""

from typing import Optional

import redis.asyncio as redis
import structlog

from school_portal.config import get_settings

logger = structlog.get_logger(__name__)

# Global Redis client
_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create the Redis client.

    Returns:
        Redis client or None if connection fails (graceful degradation)
    """
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    settings = get_settings()

    try:
        _redis_client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=settings.redis_connect_timeout_seconds,
            socket_timeout=settings.redis_connect_timeout_seconds,
        )
        await _redis_client.ping()
        logger.info("redis_connected", url=settings.redis_url.split("@")[-1])
        return _redis_client
    except Exception as e:
        logger.warning("redis_connection_failed", error=str(e))
        _redis_client = None
        return None


async def close_redis() -> None:
    """Close the Redis connection."""
    global _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("redis_connection_closed")


class RateLimiter:
    """Counts attempts per key within a fixed window.

    Attributes:
        prefix: Key namespace, e.g. "login"
        limit: Attempts allowed per window
        window_seconds: Window length
    """

    def __init__(self, prefix: str, limit: int, window_seconds: int):
        self.prefix = prefix
        self.limit = limit
        self.window_seconds = window_seconds

    def _key(self, identifier: str) -> str:
        return f"rate_limit:{self.prefix}:{identifier}"

    async def hit(self, identifier: str) -> tuple[bool, int]:
        """Record an attempt and report whether it is allowed.

        Args:
            identifier: Client address or other limiting key

        Returns:
            Tuple of (allowed, remaining); remaining is -1 when Redis is
            unavailable and the limiter lets everything through
        """
        client = await get_redis()
        if client is None:
            return True, -1

        key = self._key(identifier)

        try:
            current = await client.get(key)

            if current is None:
                await client.setex(key, self.window_seconds, "1")
                return True, self.limit - 1

            count = int(current)
            if count >= self.limit:
                return False, 0

            await client.incr(key)
            return True, self.limit - count - 1
        except Exception as e:
            logger.warning(
                "redis_rate_limit_failed", error=str(e), prefix=self.prefix
            )
            return True, -1


def get_login_rate_limiter() -> RateLimiter:
    """Limiter for login attempts per client address."""
    settings = get_settings()
    return RateLimiter(
        prefix="login",
        limit=settings.login_rate_limit,
        window_seconds=settings.login_rate_window_seconds,
    )
