from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.requestor import Requestor


class MembershipOperation(str, Enum):
    ASSIGN = "Assign"
    UNASSIGN = "Unassign"


class TeamMemberSchema(BaseModel):
    user_id: str = Field(..., alias="userId")
    add_date_time: datetime = Field(..., alias="addDateTime")
    visible: bool = True

    model_config = ConfigDict(populate_by_name=True)


class TeamCreate(BaseModel):
    team_name: str = Field(..., alias="teamName", min_length=1)
    is_active: bool = Field(True, alias="isActive")
    requestor: Requestor

    model_config = ConfigDict(populate_by_name=True)


class TeamUpdate(BaseModel):
    team_name: str = Field(..., alias="teamName", min_length=1)
    is_active: bool = Field(True, alias="isActive")
    team_code: str = Field("", alias="teamCode")
    requestor: Requestor

    model_config = ConfigDict(populate_by_name=True)


class TeamDelete(BaseModel):
    requestor: Requestor


class TeamResponse(BaseModel):
    id: str = Field(..., alias="_id")
    team_name: str = Field(..., alias="teamName")
    is_active: bool = Field(..., alias="isActive")
    team_code: str = Field("", alias="teamCode")
    members: List[TeamMemberSchema] = []
    created_datetime: datetime = Field(..., alias="createdDatetime")
    modified_datetime: datetime = Field(..., alias="modifiedDatetime")

    model_config = ConfigDict(populate_by_name=True)


class TeamMembershipUpdate(BaseModel):
    user_id: str = Field(..., alias="userId")
    operation: MembershipOperation
    requestor: Requestor

    model_config = ConfigDict(populate_by_name=True)


class TeamVisibilityUpdate(BaseModel):
    team_id: str = Field(..., alias="teamId")
    user_id: str = Field(..., alias="userId")
    visibility: bool

    model_config = ConfigDict(populate_by_name=True)


class MembershipRecord(BaseModel):
    """A team member's profile merged with the date they joined the team."""

    id: str = Field(..., alias="_id")
    add_date_time: Optional[datetime] = Field(None, alias="addDateTime")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class OperationResult(BaseModel):
    result: str


class DeleteResult(BaseModel):
    message: str
