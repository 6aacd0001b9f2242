"""Tests for UserProfileService."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import PyMongoError

from app.core.exceptions import InternalError, NotFoundError
from app.services.user_profiles import UserProfileService
from tests.mocks.teams import (
    TEAM_ID,
    TEAM_ID_2,
    USER_A,
    USER_B,
    USER_C,
    USER_D,
    InMemoryStore,
    InMemoryUserProfileRepository,
    make_profile_doc,
)


class _PassThroughCache:
    """ProfileCache stand-in that always misses."""

    def __init__(self):
        self.keys = []

    async def get_or_fetch(self, user_id, fetch_fn):
        self.keys.append(user_id)
        return await fetch_fn()


def _make_service(profiles, cache=None):
    service = UserProfileService(MagicMock(), cache or _PassThroughCache())
    service.profiles = InMemoryUserProfileRepository(InMemoryStore(profiles=profiles))
    return service


class TestGetProfile:
    def test_reads_through_cache(self):
        cache = _PassThroughCache()
        service = _make_service([make_profile_doc(USER_A, [TEAM_ID])], cache)

        profile = asyncio.run(service.get_profile(USER_A))

        assert profile["_id"] == USER_A
        assert cache.keys == [USER_A]

    def test_cached_profile_skips_database(self):
        cache = MagicMock()
        cache.get_or_fetch = AsyncMock(return_value={"_id": USER_A, "teams": []})
        service = UserProfileService(MagicMock(), cache)
        service.profiles = MagicMock()
        service.profiles.get_raw_by_id = AsyncMock()

        profile = asyncio.run(service.get_profile(USER_A))

        assert profile["_id"] == USER_A
        service.profiles.get_raw_by_id.assert_not_called()

    def test_missing_profile(self):
        service = _make_service([])

        with pytest.raises(NotFoundError):
            asyncio.run(service.get_profile(USER_A))

    def test_driver_error(self):
        service = _make_service([])
        service.profiles.get_raw_by_id = AsyncMock(side_effect=PyMongoError("down"))

        with pytest.raises(InternalError):
            asyncio.run(service.get_profile(USER_A))


class TestGetTeamMembersOfUser:
    def test_returns_teammates_across_teams(self):
        service = _make_service(
            [
                make_profile_doc(USER_A, [TEAM_ID, TEAM_ID_2], first_name="Ann"),
                make_profile_doc(USER_B, [TEAM_ID], first_name="Zed"),
                make_profile_doc(USER_C, [TEAM_ID_2], first_name="Bea"),
                make_profile_doc(USER_D, [], first_name="Cal"),
            ]
        )

        mates = asyncio.run(service.get_team_members_of_user(USER_A))

        assert [m["_id"] for m in mates] == [USER_C, USER_B]

    def test_user_without_teams(self):
        service = _make_service([make_profile_doc(USER_D, [])])

        assert asyncio.run(service.get_team_members_of_user(USER_D)) == []

    def test_missing_profile(self):
        service = _make_service([])

        with pytest.raises(NotFoundError):
            asyncio.run(service.get_team_members_of_user(USER_A))
