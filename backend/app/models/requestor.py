from typing import List

from pydantic import BaseModel, ConfigDict, Field


class RequestorPermissions(BaseModel):
    front_permissions: List[str] = Field(default_factory=list, alias="frontPermissions")

    model_config = ConfigDict(populate_by_name=True)


class Requestor(BaseModel):
    """The authenticated user on whose behalf a request is made."""

    requestor_id: str = Field(..., alias="requestorId")
    role: str
    permissions: RequestorPermissions = Field(default_factory=RequestorPermissions)

    model_config = ConfigDict(populate_by_name=True)

    def has_capability(self, capability: str) -> bool:
        return capability in self.permissions.front_permissions
