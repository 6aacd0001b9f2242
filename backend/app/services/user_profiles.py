"""
User profile reads served through the profile cache.
"""

import logging
from typing import Any, Dict, List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from app.core.cache import ProfileCache
from app.core.exceptions import InternalError, NotFoundError
from app.repositories import UserProfileRepository

logger = logging.getLogger(__name__)


class UserProfileService:
    def __init__(self, db: AsyncIOMotorDatabase, cache: ProfileCache):
        self.profiles = UserProfileRepository(db)
        self.cache = cache

    async def get_profile(self, user_id: str) -> Dict[str, Any]:
        """Cache-through read of a single profile."""

        async def fetch():
            return await self.profiles.get_raw_by_id(user_id)

        try:
            profile = await self.cache.get_or_fetch(user_id, fetch)
        except PyMongoError as e:
            logger.error(f"Failed to load user profile {user_id}: {e}")
            raise InternalError("Database error during find_one", {"userId": user_id}) from e

        if profile is None:
            raise NotFoundError("User profile not found", {"userId": user_id})
        return profile

    async def get_team_members_of_user(self, user_id: str) -> List[Dict[str, Any]]:
        """Everyone who shares at least one team with the user."""
        try:
            profile = await self.profiles.get_by_id(user_id)
            if profile is None:
                raise NotFoundError("User profile not found", {"userId": user_id})
            return await self.profiles.find_teammates(profile.teams, user_id)
        except PyMongoError as e:
            logger.error(f"Failed to load team members of user {user_id}: {e}")
            raise InternalError("Database error during find", {"userId": user_id}) from e
