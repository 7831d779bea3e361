from __future__ import annotations

from redis.asyncio import Redis
from redis.exceptions import RedisError

from authcore.domain.errors import StorageUnavailable
from authcore.domain.ports.sweep_lease import SweepLeasePort

_LUA_RELEASE = """
-- KEYS[1]: lease key
-- ARGV[1]: owner that believes it holds the lease
if redis.call('GET', KEYS[1]) == ARGV[1] then
  return redis.call('DEL', KEYS[1])
end
return 0
"""


class RedisSweepLease(SweepLeasePort):
    """
    At most one sweeper instance runs a pass at a time. The TTL frees the
    lease if its holder dies mid-sweep.
    """

    def __init__(
        self, redis: Redis, *, key: str = "sweep:lease", ttl_seconds: int = 120
    ) -> None:
        self._redis = redis
        self._key = key
        self._ttl_ms = ttl_seconds * 1000

    async def acquire(self, owner: str) -> bool:
        try:
            res = await self._redis.set(self._key, owner, nx=True, px=self._ttl_ms)
        except RedisError as e:
            raise StorageUnavailable(f"acquire sweep lease failed: {e}") from e
        return bool(res)

    async def release(self, owner: str) -> None:
        try:
            await self._redis.eval(_LUA_RELEASE, 1, self._key, owner)
        except RedisError as e:
            raise StorageUnavailable(f"release sweep lease failed: {e}") from e
