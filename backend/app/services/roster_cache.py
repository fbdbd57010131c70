"""
Short-lived Redis cache for grouping rosters.

Building a roster joins every active student with their profile, which is the
slow part of a suggestion request. Teachers usually try several algorithms in
a row against the same roster, so the joined snapshot is kept for a few
minutes, keyed by the excluded ids. Without ``REDIS_URL`` the cache is off.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Iterable, Optional

import redis.asyncio as redis
from pydantic import ValidationError

from app.config import settings
from app.models.student import StudentCandidate

logger = logging.getLogger(__name__)

KEY_PREFIX = "roster:"


class RosterCache:
    def __init__(self, client: Optional[redis.Redis] = None, ttl: Optional[int] = None):
        self.ttl = ttl if ttl is not None else settings.roster_cache_ttl_seconds
        self.redis_client = client

        if self.redis_client is None and settings.redis_url:
            try:
                self.redis_client = redis.from_url(
                    settings.redis_url, db=settings.redis_db, decode_responses=True
                )
                logger.info("RosterCache using Redis for storage")
            except Exception as e:
                logger.warning(f"Failed to connect to Redis: {e}. Roster caching disabled")
                self.redis_client = None

    @property
    def enabled(self) -> bool:
        return self.redis_client is not None and self.ttl > 0

    @staticmethod
    def _cache_key(exclude_ids: Iterable[str]) -> str:
        excluded = json.dumps(sorted(set(exclude_ids)))
        return KEY_PREFIX + hashlib.sha256(excluded.encode("utf-8")).hexdigest()

    async def get(self, exclude_ids: Iterable[str]) -> Optional[list[StudentCandidate]]:
        if not self.enabled:
            return None

        try:
            raw = await self.redis_client.get(self._cache_key(exclude_ids))
        except Exception as e:
            logger.warning(f"Roster cache read failed: {e}")
            return None

        if not raw:
            return None
        try:
            return [StudentCandidate.model_validate(item) for item in json.loads(raw)]
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning(f"Discarding unreadable roster cache entry: {e}")
            return None

    async def set(self, exclude_ids: Iterable[str], roster: list[StudentCandidate]) -> bool:
        if not self.enabled:
            return False

        payload = json.dumps([s.model_dump(mode="json") for s in roster])
        try:
            await self.redis_client.set(self._cache_key(exclude_ids), payload, ex=self.ttl)
            return True
        except Exception as e:
            logger.warning(f"Roster cache write failed: {e}")
            return False

    async def close(self) -> None:
        if self.redis_client is not None:
            await self.redis_client.aclose()


_roster_cache: Optional[RosterCache] = None


def get_roster_cache() -> RosterCache:
    global _roster_cache
    if _roster_cache is None:
        _roster_cache = RosterCache()
    return _roster_cache


async def close_roster_cache() -> None:
    global _roster_cache
    if _roster_cache is not None:
        await _roster_cache.close()
        _roster_cache = None
