"""
Rebuild Locks

Cross-process single-flight guard for snapshot rebuilds, backed by Redis
`SET NX EX`. The in-process guard lives in the refresher; this lock only
extends it across API workers.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Callable, Optional

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = structlog.get_logger(__name__)

# Delete the key only while it still holds our token
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class RedisRebuildLock:
    """
    Per-organization rebuild lock.

    Example:
        lock = RedisRebuildLock(get_redis, ttl_seconds=120)
        async with lock.hold(organization_id) as acquired:
            if acquired:
                ...
    """

    def __init__(self, client: Callable[[], Redis], ttl_seconds: int = 120, prefix: str = "inventory_rebuild"):
        self._client = client
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix

    def key(self, organization_id: str) -> str:
        return f"{self.prefix}:{organization_id}"

    async def acquire(self, organization_id: str) -> Optional[str]:
        """Return a token when the lock was taken, None when another worker holds it"""
        token = uuid.uuid4().hex
        acquired = await self._client().set(
            self.key(organization_id), token, nx=True, ex=self.ttl_seconds
        )
        return token if acquired else None

    async def release(self, organization_id: str, token: str) -> None:
        await self._client().eval(_RELEASE_SCRIPT, 1, self.key(organization_id), token)

    @asynccontextmanager
    async def hold(self, organization_id: str) -> AsyncGenerator[bool, None]:
        """
        Hold the lock for the duration of the block.

        When Redis cannot be reached the rebuild proceeds under the
        in-process guard alone.
        """
        try:
            token = await self.acquire(organization_id)
        except RedisError as e:
            logger.warning("Rebuild lock unavailable, continuing without it",
                           organization_id=organization_id, error=str(e))
            yield True
            return

        if token is None:
            logger.info("Rebuild already running on another worker", organization_id=organization_id)
            yield False
            return

        try:
            yield True
        finally:
            try:
                await self.release(organization_id, token)
            except RedisError as e:
                logger.warning("Failed to release rebuild lock",
                               organization_id=organization_id, error=str(e))
