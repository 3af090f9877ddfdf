"""Redis cache for finished search responses."""

import hashlib
import json
import logging
from typing import Any

import redis.asyncio as redis

from tourwise.config import settings

logger = logging.getLogger(__name__)


class CacheService:
    """Redis-backed JSON cache. Fails open: any Redis error reads as a miss."""

    def __init__(self, url: str | None = None, default_ttl: int | None = None):
        self._url = url or settings.redis_url
        self._default_ttl = default_ttl or settings.search_cache_ttl
        self._redis: redis.Redis | None = None

    async def _get_redis(self) -> redis.Redis | None:
        if self._redis is None:
            try:
                self._redis = redis.from_url(self._url, encoding="utf-8", decode_responses=True)
                await self._redis.ping()
            except Exception as e:
                logger.warning(f"Redis unavailable, cache disabled: {e}")
                self._redis = None
                return None
        return self._redis

    async def get(self, key: str) -> Any | None:
        """Get a value from cache. Returns None on miss or error."""
        try:
            r = await self._get_redis()
            if r is None:
                return None
            raw = await r.get(key)
            if raw is None:
                return None
            return json.loads(raw)
        except Exception:
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Set a value with TTL. Returns False on error."""
        try:
            r = await self._get_redis()
            if r is None:
                return False
            await r.set(key, json.dumps(value, default=str), ex=ttl or self._default_ttl)
            return True
        except Exception:
            return False

    # Search responses

    @staticmethod
    def search_key(spec_payload: dict, weights: dict) -> str:
        blob = json.dumps({"spec": spec_payload, "weights": weights}, sort_keys=True, default=str)
        return f"search:{hashlib.sha256(blob.encode()).hexdigest()[:32]}"

    async def get_search(self, spec_payload: dict, weights: dict) -> dict | None:
        return await self.get(self.search_key(spec_payload, weights))

    async def set_search(self, spec_payload: dict, weights: dict, data: dict) -> bool:
        return await self.set(self.search_key(spec_payload, weights), data)

    async def close(self):
        if self._redis:
            await self._redis.aclose()
            self._redis = None
