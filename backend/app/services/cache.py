"""
Redis Cache for AI Analyses

Match analyses and cover letters cost an AI round trip each. Results
are cached per listing and per hash of the profile and criteria fields
that feed the prompt, so editing either naturally invalidates its entries.

    analysis:{listing_id}:{profile_hash}:{criteria_hash}    1 hour
    letter:{listing_id}:{profile_hash}:{options_hash}       24 hours

Deleting or editing a listing drops both layers for that listing.
When Redis is unreachable every read is a miss and every write a no-op.
"""

import json
import hashlib
import logging
from collections import Counter
from enum import Enum
from typing import Any, Dict, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.config import get_settings
from app.middleware.metrics import record_cache_hit, record_cache_miss

logger = logging.getLogger(__name__)

CACHE_ERRORS = (RedisError, OSError)


class CacheLayer(Enum):
    ANALYSIS = ("analysis", "analysis", 3600)
    COVER_LETTER = ("cover_letter", "letter", 86400)

    def __init__(self, layer_name: str, prefix: str, ttl: int):
        self.layer_name = layer_name
        self.prefix = prefix
        self.ttl = ttl

    def key(self, listing_id: str, *parts: str) -> str:
        return ":".join((self.prefix, listing_id) + parts)


def hash_content(*args: Any) -> str:
    """16 hex chars of sha256 over the JSON form of args (dict keys sorted)."""
    content = json.dumps(args, sort_keys=True, default=str)
    return hashlib.sha256(content.encode()).hexdigest()[:16]


def profile_hash(profile) -> str:
    return hash_content(
        profile.name,
        profile.title,
        profile.summary,
        profile.skills or [],
        profile.experience or [],
        profile.education or [],
    )


def criteria_hash(criteria) -> str:
    """Hash of the criteria fields the match prompt includes; "none" without criteria."""
    if criteria is None:
        return "none"
    return hash_content(
        criteria.keywords or [],
        criteria.locations or [],
        criteria.job_type,
        criteria.experience_level,
    )


class AnalysisCache:
    """Analysis and cover-letter cache with per-layer hit counters."""

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self.redis: Optional[redis.Redis] = None
        self.hits: Counter = Counter()
        self.misses: Counter = Counter()

    def _client(self) -> redis.Redis:
        # from_url does not connect; the first command does
        if self.redis is None:
            self.redis = redis.from_url(self.redis_url, encoding="utf-8", decode_responses=True)
        return self.redis

    async def _read(self, layer: CacheLayer, key: str) -> Optional[str]:
        try:
            value = await self._client().get(key)
        except CACHE_ERRORS as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            value = None

        counter, record = (self.hits, record_cache_hit) if value else (self.misses, record_cache_miss)
        counter[layer.layer_name] += 1
        record(layer.layer_name)
        return value or None

    async def _write(self, layer: CacheLayer, key: str, value: str) -> bool:
        try:
            await self._client().setex(key, layer.ttl, value)
        except CACHE_ERRORS as e:
            logger.warning(f"Cache write failed for {key}: {e}")
            return False
        return True

    async def get_analysis(self, listing_id: str, profile_key: str) -> Optional[Dict[str, Any]]:
        raw = await self._read(CacheLayer.ANALYSIS, CacheLayer.ANALYSIS.key(listing_id, profile_key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring unreadable cached analysis for listing {listing_id}")
            return None

    async def set_analysis(self, listing_id: str, profile_key: str, analysis: Dict[str, Any]) -> bool:
        key = CacheLayer.ANALYSIS.key(listing_id, profile_key)
        return await self._write(CacheLayer.ANALYSIS, key, json.dumps(analysis))

    async def get_cover_letter(self, listing_id: str, profile_key: str, options: Dict[str, Any]) -> Optional[str]:
        key = CacheLayer.COVER_LETTER.key(listing_id, profile_key, hash_content(options))
        return await self._read(CacheLayer.COVER_LETTER, key)

    async def set_cover_letter(
        self,
        listing_id: str,
        profile_key: str,
        options: Dict[str, Any],
        letter: str,
    ) -> bool:
        key = CacheLayer.COVER_LETTER.key(listing_id, profile_key, hash_content(options))
        return await self._write(CacheLayer.COVER_LETTER, key, letter)

    async def invalidate_listing(self, listing_id: str) -> int:
        """Delete every cached entry for a listing; returns the number of keys removed."""
        client = self._client()
        removed = 0
        try:
            for layer in CacheLayer:
                keys = [key async for key in client.scan_iter(match=layer.key(listing_id, "*"))]
                if keys:
                    removed += await client.delete(*keys)
        except CACHE_ERRORS as e:
            logger.warning(f"Cache invalidation failed for listing {listing_id}: {e}")
        return removed

    async def health_check(self) -> bool:
        try:
            await self._client().ping()
        except CACHE_ERRORS as e:
            logger.warning(f"Redis health check failed: {e}")
            return False
        return True

    def get_stats(self) -> Dict[str, Dict[str, Any]]:
        stats = {}
        for layer in CacheLayer:
            hits = self.hits[layer.layer_name]
            total = hits + self.misses[layer.layer_name]
            stats[layer.layer_name] = {
                "hits": hits,
                "misses": total - hits,
                "total": total,
                "hit_rate": hits / total if total else 0.0,
            }
        return stats

    async def close(self) -> None:
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None


_cache_instance: Optional[AnalysisCache] = None


async def get_cache(redis_url: Optional[str] = None) -> AnalysisCache:
    """Process-wide AnalysisCache, created on first use."""
    global _cache_instance
    if _cache_instance is None:
        _cache_instance = AnalysisCache(redis_url=redis_url or get_settings().redis_url)
    return _cache_instance
