"""
User Profile Repository

Database operations on the userProfiles collection. Only the team
references of a profile are written here; the rest of the profile is
owned elsewhere.
"""

from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.models.user_profile import UserProfile


class UserProfileRepository:
    """Repository for user profile database operations."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db.userProfiles

    async def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        """Get profile by ID."""
        data = await self.collection.find_one({"_id": user_id})
        if data:
            return UserProfile(**data)
        return None

    async def get_raw_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Get raw profile document by ID."""
        return await self.collection.find_one({"_id": user_id})

    async def add_team(self, user_id: str, team_id: str) -> Optional[Dict[str, Any]]:
        """Add a team reference to one profile and return the updated profile."""
        return await self.collection.find_one_and_update(
            {"_id": user_id},
            {"$addToSet": {"teams": team_id}},
            return_document=ReturnDocument.AFTER,
        )

    async def remove_team(self, user_id: str, team_id: str) -> Optional[Dict[str, Any]]:
        """Remove a team reference from one profile and return the updated profile."""
        return await self.collection.find_one_and_update(
            {"_id": user_id},
            {"$pull": {"teams": team_id}},
            return_document=ReturnDocument.AFTER,
        )

    async def add_team_to_many(self, user_ids: List[str], team_id: str) -> int:
        """Add a team reference to every listed profile."""
        if not user_ids:
            return 0
        result = await self.collection.update_many(
            {"_id": {"$in": user_ids}}, {"$addToSet": {"teams": team_id}}
        )
        return result.modified_count

    async def remove_team_from_many(self, user_ids: List[str], team_id: str) -> int:
        """Remove a team reference from every listed profile."""
        if not user_ids:
            return 0
        result = await self.collection.update_many(
            {"_id": {"$in": user_ids}}, {"$pull": {"teams": team_id}}
        )
        return result.modified_count

    async def remove_team_from_all(self, team_id: str) -> int:
        """Remove a team reference from every profile that holds it."""
        result = await self.collection.update_many(
            {"teams": team_id}, {"$pull": {"teams": team_id}}
        )
        return result.modified_count

    async def remove_team_from_non_members(self, team_id: str, member_ids: List[str]) -> int:
        """Remove a team reference from every profile not in member_ids."""
        result = await self.collection.update_many(
            {"teams": team_id, "_id": {"$nin": member_ids}},
            {"$pull": {"teams": team_id}},
        )
        return result.modified_count

    async def remove_teams_except(self, known_team_ids: List[str]) -> int:
        """Strip every team reference that is not in known_team_ids."""
        result = await self.collection.update_many(
            {"teams": {"$elemMatch": {"$nin": known_team_ids}}},
            {"$pull": {"teams": {"$nin": known_team_ids}}},
        )
        return result.modified_count

    async def find_teammates(
        self, team_ids: List[str], exclude_user_id: str
    ) -> List[Dict[str, Any]]:
        """Profiles sharing at least one of team_ids, minus the given user."""
        if not team_ids:
            return []
        cursor = self.collection.find(
            {"teams": {"$in": team_ids}, "_id": {"$ne": exclude_user_id}},
            {"firstName": 1, "lastName": 1, "role": 1, "isActive": 1},
        ).sort([("firstName", 1), ("lastName", 1)])
        return await cursor.to_list(None)
