"""Tag-indexed cache entries stored in Redis.

Key format:
    cache:entry:{key}  -> serialized payload (string, with TTL)
    cache:tag:{tag}    -> Set of entry keys stored under the tag

Invalidating a tag deletes every entry key in its set plus the set itself,
so repeating the call finds nothing left to delete.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from redis.asyncio import Redis
from redis.exceptions import RedisError

from scenario_booking.core.errors import CollaboratorError

logger = logging.getLogger(__name__)


class RedisTagCache:
    """Redis storage wrapper for tagged cache entries."""

    KEY_PREFIX = "cache"

    def __init__(self, redis: Redis, *, ttl_seconds: int = 300) -> None:
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    def _entry_key(self, key: str) -> str:
        return f"{self.KEY_PREFIX}:entry:{key}"

    def _tag_key(self, tag: str) -> str:
        return f"{self.KEY_PREFIX}:tag:{tag}"

    # ── Read ─────────────────────────────────────────────────────────────

    async def get(self, key: str) -> str | None:
        try:
            value = await self.redis.get(self._entry_key(key))
        except RedisError as exc:
            raise CollaboratorError("cache get", exc) from exc
        if isinstance(value, bytes):
            return value.decode()
        return value

    # ── Write ────────────────────────────────────────────────────────────

    async def set(self, key: str, value: str, tags: Iterable[str]) -> None:
        entry_key = self._entry_key(key)
        pipe = self.redis.pipeline()
        pipe.set(entry_key, value, ex=self.ttl_seconds)
        for tag in tags:
            tag_key = self._tag_key(tag)
            pipe.sadd(tag_key, entry_key)
            pipe.expire(tag_key, self.ttl_seconds)
        try:
            await pipe.execute()
        except RedisError as exc:
            raise CollaboratorError("cache set", exc) from exc

    # ── Delete ───────────────────────────────────────────────────────────

    async def invalidate(self, tag: str) -> None:
        tag_key = self._tag_key(tag)
        try:
            members = await self.redis.smembers(tag_key)
            keys = [m.decode() if isinstance(m, bytes) else m for m in members]
            await self.redis.delete(*keys, tag_key)
        except RedisError as exc:
            raise CollaboratorError(f"invalidate {tag}", exc) from exc
        logger.debug("Cache tag %s dropped %d entries", tag, len(keys))


class LoggingTagInvalidator:
    """Invalidator used when no Redis is configured: nothing is cached."""

    async def invalidate(self, tag: str) -> None:
        logger.debug("No cache configured; skipping invalidation of %s", tag)


__all__ = ["LoggingTagInvalidator", "RedisTagCache"]
