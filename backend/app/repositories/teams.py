"""
Team Repository

Centralizes all database operations for teams.
"""

from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.models.team import Team, TeamMember


_MEMBERS_USER_ID = "members.userId"


def build_membership_pipeline(team_id: str) -> List[Dict[str, Any]]:
    """
    Build the aggregation pipeline joining a team's members with their profiles.

    One output document per member: the member's user profile merged with
    the member's addDateTime. Members whose profile no longer exists are
    dropped by the second $unwind.
    """
    return [
        {"$match": {"_id": team_id}},
        {"$unwind": "$members"},
        {
            "$lookup": {
                "from": "userProfiles",
                "localField": _MEMBERS_USER_ID,
                "foreignField": "_id",
                "as": "userProfile",
            }
        },
        {"$unwind": "$userProfile"},
        {
            "$replaceRoot": {
                "newRoot": {
                    "$mergeObjects": [
                        {"addDateTime": "$members.addDateTime"},
                        "$userProfile",
                    ]
                }
            }
        },
    ]


class TeamRepository:
    """Repository for team database operations."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db.teams

    async def get_by_id(self, team_id: str) -> Optional[Team]:
        """Get team by ID."""
        data = await self.collection.find_one({"_id": team_id})
        if data:
            return Team(**data)
        return None

    async def exists_by_name(self, team_name: str) -> bool:
        """Check whether a team with this exact name exists."""
        return await self.collection.find_one({"teamName": team_name}, {"_id": 1}) is not None

    async def list_sorted_by_name(self) -> List[Team]:
        """All teams, ordered by teamName ascending."""
        cursor = self.collection.find({}).sort("teamName", 1)
        docs = await cursor.to_list(None)
        return [Team(**doc) for doc in docs]

    async def create(self, team: Team) -> Team:
        """Create a new team. Raises DuplicateKeyError on a taken teamName."""
        await self.collection.insert_one(team.model_dump(by_alias=True))
        return team

    async def update(self, team_id: str, update_data: Dict[str, Any]) -> bool:
        """Set fields on a team. Returns False if the team does not exist."""
        result = await self.collection.update_one({"_id": team_id}, {"$set": update_data})
        return result.matched_count > 0

    async def delete(self, team_id: str) -> bool:
        """Delete team by ID."""
        result = await self.collection.delete_one({"_id": team_id})
        return result.deleted_count > 0

    async def add_member(
        self, team_id: str, member: TeamMember, modified_at: datetime
    ) -> bool:
        """
        Add a member, or make an existing entry visible again.

        The guard on members.userId makes the push idempotent per user.
        An existing entry gets visible=true so the profile write that
        follows never references a team the member is hidden from.
        modifiedDatetime is refreshed either way. Returns True if a new
        entry was pushed.
        """
        result = await self.collection.update_one(
            {"_id": team_id, _MEMBERS_USER_ID: {"$ne": member.user_id}},
            {
                "$push": {"members": member.model_dump(by_alias=True)},
                "$set": {"modifiedDatetime": modified_at},
            },
        )
        if result.modified_count:
            return True

        await self.collection.update_one(
            {"_id": team_id, _MEMBERS_USER_ID: member.user_id},
            {"$set": {"members.$.visible": True, "modifiedDatetime": modified_at}},
        )
        return False

    async def remove_member(self, team_id: str, user_id: str, modified_at: datetime) -> None:
        """Remove every member entry for user_id."""
        await self.collection.update_one(
            {"_id": team_id},
            {
                "$pull": {"members": {"userId": user_id}},
                "$set": {"modifiedDatetime": modified_at},
            },
        )

    async def set_member_visibility(
        self, team_id: str, user_id: str, visible: bool, modified_at: datetime
    ) -> bool:
        """Set the visible flag of one member. Returns False if no entry matched."""
        result = await self.collection.update_one(
            {"_id": team_id, _MEMBERS_USER_ID: user_id},
            {"$set": {"members.$.visible": visible, "modifiedDatetime": modified_at}},
        )
        return result.matched_count > 0

    async def get_membership(self, team_id: str) -> List[Dict[str, Any]]:
        """Members of a team joined with their user profiles."""
        return await self.collection.aggregate(build_membership_pipeline(team_id)).to_list(None)

    async def iterate_memberships(self) -> AsyncIterator[Dict[str, Any]]:
        """Iterate over {_id, members} of every team (async generator)."""
        async for doc in self.collection.find({}, {"_id": 1, "members": 1}):
            yield doc
