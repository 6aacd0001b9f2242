"""Tests for cache key builders and the profile cache."""

import asyncio
import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as redis
from bson import ObjectId

from app.core.cache import CacheKeys, CacheService, CacheTTL, ProfileCache
from app.services.events import MEMBERSHIP_ASSIGNED, MembershipChanged
from tests.mocks.teams import TEAM_ID, USER_A, USER_B


def _mock_cache_service(cached_keys=()):
    """CacheService stand-in backed by a set of present keys."""
    present = set(cached_keys)
    cache = MagicMock(spec=CacheService)
    cache.exists = AsyncMock(side_effect=lambda key: key in present)

    async def _delete(key):
        present.discard(key)
        return True

    cache.delete = AsyncMock(side_effect=_delete)
    cache.get_or_fetch = AsyncMock()
    return cache, present


class TestCacheKeys:
    def test_user_profile_key(self):
        assert CacheKeys.user_profile("abc") == "user-abc"

    def test_profile_ttl_is_positive_int(self):
        assert isinstance(CacheTTL.USER_PROFILE, int)
        assert CacheTTL.USER_PROFILE > 0


class TestProfileCacheInvalidate:
    def test_removes_cached_profile(self):
        cache, present = _mock_cache_service([f"user-{USER_A}"])

        removed = asyncio.run(ProfileCache(cache).invalidate(USER_A))

        assert removed is True
        assert present == set()

    def test_uncached_profile_is_noop(self):
        cache, _ = _mock_cache_service()

        removed = asyncio.run(ProfileCache(cache).invalidate(USER_A))

        assert removed is False
        cache.delete.assert_not_called()


class TestProfileCacheEvents:
    def test_membership_event_invalidates_each_user(self):
        cache, present = _mock_cache_service([f"user-{USER_A}", f"user-{USER_B}", "user-other"])
        event = MembershipChanged(TEAM_ID, (USER_A, USER_B), MEMBERSHIP_ASSIGNED)

        asyncio.run(ProfileCache(cache).on_membership_changed(event))

        assert present == {"user-other"}

    def test_get_or_fetch_uses_profile_key(self):
        cache, _ = _mock_cache_service()
        fetch = AsyncMock()

        asyncio.run(ProfileCache(cache).get_or_fetch(USER_A, fetch))

        cache.get_or_fetch.assert_called_once_with(
            f"user-{USER_A}", fetch, CacheTTL.USER_PROFILE
        )


class TestCacheServiceDegradation:
    def test_unavailable_cache_returns_miss(self):
        service = CacheService()
        service._available = False

        assert asyncio.run(service.get("user-x")) is None
        assert asyncio.run(service.set("user-x", {"a": 1})) is False
        assert asyncio.run(service.exists("user-x")) is False

    def test_get_or_fetch_falls_through_when_unavailable(self):
        service = CacheService()
        service._available = False
        fetch = AsyncMock(return_value={"_id": USER_A})

        result = asyncio.run(service.get_or_fetch("user-x", fetch))

        assert result == {"_id": USER_A}
        fetch.assert_called_once()


class TestCacheServiceFailures:
    def test_connection_error_disables_cache(self):
        service = CacheService()
        client = MagicMock()
        client.get = AsyncMock(side_effect=redis.ConnectionError("down"))
        service._client = client

        assert asyncio.run(service.get("user-x")) is None
        assert service._available is False

    def test_hit_decodes_json(self):
        service = CacheService()
        client = MagicMock()
        client.get = AsyncMock(return_value='{"_id": "abc"}')
        service._client = client

        assert asyncio.run(service.get("user-abc")) == {"_id": "abc"}

    def test_fetch_errors_propagate(self):
        service = CacheService()
        service._available = False
        fetch = AsyncMock(side_effect=ValueError("db down"))

        with pytest.raises(ValueError, match="db down"):
            asyncio.run(service.get_or_fetch("user-x", fetch))

    def test_set_writes_iso_datetimes_and_hex_ids(self):
        service = CacheService()
        client = MagicMock()
        client.setex = AsyncMock()
        service._client = client
        oid = ObjectId(USER_A)
        profile = {"_id": oid, "createdAt": datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)}

        assert asyncio.run(service.set("user-x", profile, 60)) is True

        stored = json.loads(client.setex.call_args[0][2])
        assert stored == {"_id": USER_A, "createdAt": "2024-01-02T03:04:05+00:00"}
