from datetime import datetime, timezone
from typing import List

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core import ensure_utc
from app.models.types import PyObjectId


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TeamMember(BaseModel):
    user_id: PyObjectId = Field(..., alias="userId")
    add_date_time: datetime = Field(default_factory=_now, alias="addDateTime")
    visible: bool = True

    model_config = ConfigDict(populate_by_name=True)


class Team(BaseModel):
    id: PyObjectId = Field(default_factory=lambda: str(ObjectId()), alias="_id")
    team_name: str = Field(..., alias="teamName")
    is_active: bool = Field(True, alias="isActive")
    team_code: str = Field("", alias="teamCode")
    members: List[TeamMember] = []
    created_datetime: datetime = Field(default_factory=_now, alias="createdDatetime")
    modified_datetime: datetime = Field(default_factory=_now, alias="modifiedDatetime")

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    # MongoDB hands back naive datetimes
    @field_validator("created_datetime", "modified_datetime")
    @classmethod
    def _as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    def find_member(self, user_id: str) -> int:
        """Index of the member entry for user_id, or -1."""
        for i, member in enumerate(self.members):
            if member.user_id == user_id:
                return i
        return -1

    def member_ids(self) -> List[str]:
        return [m.user_id for m in self.members]
