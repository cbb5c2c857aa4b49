import logging
from typing import Optional, Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

from premium_push.config import get_settings
from premium_push.schemas.user import User


log = logging.getLogger(__name__)


class UserSource(Protocol):

    async def find_active_user_by_email(self, email: str) -> Optional[User]:
        ...


def cache_key(email: str) -> str:
    return f"user_plan:{email}"


class PlanCache:
    """
    Read-through cache for user plan records keyed by email.

    Only the raw user record is cached; entitlement is still evaluated
    against the caller's ``now`` every time. Billing handlers must call
    ``invalidate`` after changing a plan.
    """

    def __init__(self, source: UserSource, client: Optional[redis.Redis] = None, ttl_seconds: int = 300) -> None:
        self._source = source
        self._redis = client
        self._ttl = ttl_seconds
        self.enabled = client is not None

    async def find_active_user_by_email(self, email: str) -> Optional[User]:
        if self._redis is None:
            return await self._source.find_active_user_by_email(email)

        key = cache_key(email)
        try:
            cached = await self._redis.get(key)
        except RedisError as exc:
            log.error("Redis read failed for %s, falling back to database: %s", key, exc)
            return await self._source.find_active_user_by_email(email)

        if cached:
            log.debug("Cache hit for %s", key)
            return User.model_validate_json(cached)

        log.debug("Cache miss for %s", key)
        user = await self._source.find_active_user_by_email(email)
        if user is not None:
            try:
                await self._redis.setex(key, self._ttl, user.model_dump_json())
            except RedisError as exc:
                log.error("Redis write failed for %s: %s", key, exc)
        return user

    async def invalidate(self, email: str) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.delete(cache_key(email))
        except RedisError as exc:
            log.error("Redis invalidation failed for %s: %s", email, exc)


_client = None


def get_redis() -> Optional[redis.Redis]:
    global _client
    if _client is not None:
        return _client
    url = get_settings().redis_url
    if not url:
        return None
    _client = redis.from_url(url)
    return _client


async def close_redis() -> None:
    global _client
    if _client is None:
        return
    client, _client = _client, None
    await client.aclose()
