from typing import Any

from redis import asyncio as aioredis

from ..core.config import settings


class _AsyncNullRedis:
    """Stand-in used when no broker is configured; has no ``publish``."""

    async def close(self) -> None:
        return None


def _build_client() -> Any:
    url = (settings.REDIS_URL or "").strip()
    if not settings.WS_BUS_ENABLED or not url.lower().startswith(("redis://", "rediss://")):
        return _AsyncNullRedis()
    return aioredis.from_url(
        url,
        decode_responses=True,
        socket_connect_timeout=2,
        socket_timeout=5,
        health_check_interval=30,
        retry_on_timeout=True,
    )


redis = _build_client()


async def close_redis_client() -> None:
    """Close the bus connection pool on shutdown."""
    closer = getattr(redis, "aclose", None) or redis.close
    await closer()


__all__ = ["redis", "close_redis_client"]
