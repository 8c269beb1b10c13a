"""
Tests for the Redis analysis cache: key layout, TTLs, per-listing
invalidation, hit counters and behaviour with Redis down.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

import app.services.cache as cache_module
from app.services.cache import (
    AnalysisCache,
    CacheLayer,
    criteria_hash,
    get_cache,
    hash_content,
    profile_hash,
)


async def scan_results(*keys):
    for key in keys:
        yield key


@pytest.fixture
def redis_client():
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.setex = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=0)
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    client.scan_iter = MagicMock(side_effect=lambda match: scan_results())
    return client


@pytest.fixture
def cache(redis_client):
    analysis_cache = AnalysisCache(redis_url="redis://localhost:6379")
    analysis_cache.redis = redis_client
    return analysis_cache


class TestKeys:
    def test_hash_is_short_hex(self):
        digest = hash_content("Senior Python Developer")
        assert len(digest) == 16
        assert int(digest, 16) >= 0

    def test_hash_is_stable(self):
        assert hash_content("a", [1, 2]) == hash_content("a", [1, 2])

    def test_hash_ignores_dict_order(self):
        assert hash_content({"tone": "formal", "length": "short"}) == hash_content({"length": "short", "tone": "formal"})

    def test_profile_hash_follows_skills(self):
        profile = SimpleNamespace(name="Ada", title=None, summary=None, skills=["Python"], experience=[], education=[])
        changed = SimpleNamespace(**{**vars(profile), "skills": ["Python", "Go"]})
        assert profile_hash(profile) != profile_hash(changed)

    def test_criteria_hash_follows_prompt_fields(self):
        criteria = SimpleNamespace(keywords=["python"], locations=[], job_type=None, experience_level=None)
        remote = SimpleNamespace(**{**vars(criteria), "locations": ["Remote"]})
        assert criteria_hash(criteria) != criteria_hash(remote)
        assert criteria_hash(None) == "none"

    def test_layer_keys(self):
        assert CacheLayer.ANALYSIS.key("listing-1", "abc") == "analysis:listing-1:abc"
        assert CacheLayer.COVER_LETTER.key("listing-1", "abc", "opts") == "letter:listing-1:abc:opts"

    def test_layer_ttls(self):
        assert CacheLayer.ANALYSIS.ttl == 3600
        assert CacheLayer.COVER_LETTER.ttl == 86400


class TestAnalysisLayer:
    @pytest.mark.asyncio
    async def test_miss_is_counted(self, cache):
        assert await cache.get_analysis("listing-1", "abc") is None
        assert cache.misses["analysis"] == 1
        assert cache.hits["analysis"] == 0

    @pytest.mark.asyncio
    async def test_hit_decodes_json(self, cache, redis_client):
        redis_client.get.return_value = json.dumps({"overall_score": 85})

        assert await cache.get_analysis("listing-1", "abc") == {"overall_score": 85}
        assert cache.hits["analysis"] == 1
        redis_client.get.assert_awaited_once_with("analysis:listing-1:abc")

    @pytest.mark.asyncio
    async def test_store_uses_one_hour_ttl(self, cache, redis_client):
        assert await cache.set_analysis("listing-1", "abc", {"overall_score": 85}) is True

        redis_client.setex.assert_awaited_once_with("analysis:listing-1:abc", 3600, '{"overall_score": 85}')

    @pytest.mark.asyncio
    async def test_unreadable_entry_is_ignored(self, cache, redis_client):
        redis_client.get.return_value = "{not json"
        assert await cache.get_analysis("listing-1", "abc") is None


class TestCoverLetterLayer:
    @pytest.mark.asyncio
    async def test_options_change_the_key(self, cache, redis_client):
        await cache.get_cover_letter("listing-1", "abc", {"tone": "formal"})
        await cache.get_cover_letter("listing-1", "abc", {"tone": "friendly"})

        formal, friendly = [call.args[0] for call in redis_client.get.await_args_list]
        assert formal.startswith("letter:listing-1:abc:")
        assert formal != friendly

    @pytest.mark.asyncio
    async def test_store_uses_one_day_ttl(self, cache, redis_client):
        await cache.set_cover_letter("listing-1", "abc", {}, "Dear Hiring Manager")

        key, ttl, value = redis_client.setex.await_args.args
        assert ttl == 86400
        assert value == "Dear Hiring Manager"


class TestInvalidation:
    @pytest.mark.asyncio
    async def test_drops_both_layers_for_listing(self, cache, redis_client):
        found = {
            "analysis:listing-1:*": ["analysis:listing-1:abc"],
            "letter:listing-1:*": ["letter:listing-1:abc:x", "letter:listing-1:abc:y"],
        }
        redis_client.scan_iter.side_effect = lambda match: scan_results(*found[match])
        redis_client.delete.side_effect = lambda *keys: len(keys)

        assert await cache.invalidate_listing("listing-1") == 3
        assert redis_client.delete.await_count == 2

    @pytest.mark.asyncio
    async def test_nothing_cached(self, cache, redis_client):
        assert await cache.invalidate_listing("listing-1") == 0
        redis_client.delete.assert_not_awaited()


class TestStats:
    def test_hit_rate_per_layer(self, cache):
        cache.hits["analysis"] = 80
        cache.misses["analysis"] = 20

        stats = cache.get_stats()

        assert stats["analysis"] == {"hits": 80, "misses": 20, "total": 100, "hit_rate": 0.8}
        assert stats["cover_letter"]["hit_rate"] == 0.0


class TestRedisDown:
    @pytest.mark.asyncio
    async def test_read_becomes_miss(self, cache, redis_client):
        redis_client.get.side_effect = ConnectionError("Redis unavailable")

        assert await cache.get_analysis("listing-1", "abc") is None
        assert cache.misses["analysis"] == 1

    @pytest.mark.asyncio
    async def test_write_reports_failure(self, cache, redis_client):
        redis_client.setex.side_effect = ConnectionError("Redis unavailable")

        with patch("app.services.cache.logger") as logger:
            assert await cache.set_analysis("listing-1", "abc", {}) is False
        logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_invalidation_reports_zero(self, cache, redis_client):
        redis_client.scan_iter.side_effect = ConnectionError("Redis unavailable")

        assert await cache.invalidate_listing("listing-1") == 0

    @pytest.mark.asyncio
    async def test_health_check(self, cache, redis_client):
        assert await cache.health_check() is True

        redis_client.ping.side_effect = ConnectionError("Connection refused")
        assert await cache.health_check() is False

    @pytest.mark.asyncio
    async def test_close_drops_client(self, cache, redis_client):
        await cache.close()

        redis_client.aclose.assert_awaited_once()
        assert cache.redis is None


class TestSingleton:
    @pytest.fixture(autouse=True)
    def fresh_instance(self):
        cache_module._cache_instance = None
        yield
        cache_module._cache_instance = None

    @pytest.mark.asyncio
    async def test_same_instance_returned(self):
        assert await get_cache("redis://localhost:6379") is await get_cache()

    @pytest.mark.asyncio
    async def test_defaults_to_configured_url(self):
        with patch("app.services.cache.get_settings") as get_settings:
            get_settings.return_value.redis_url = "redis://custom:6379"
            cache = await get_cache()
        assert cache.redis_url == "redis://custom:6379"
