from __future__ import annotations

from typing import Optional

from redis.asyncio import Redis

from authcore.settings import get_settings

_client: Optional[Redis] = None


def get_redis() -> Redis:
    """Lazy process-wide client; only the sweeper worker needs Redis (lease)."""
    global _client
    if _client is None:
        settings = get_settings()
        _client = Redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=settings.redis_socket_timeout_seconds,
        )
    return _client


async def close_redis() -> None:
    global _client
    client, _client = _client, None
    if client is not None:
        await client.aclose()
