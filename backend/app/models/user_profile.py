from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.types import PyObjectId


class UserProfile(BaseModel):
    """
    The slice of a user profile this service reads and writes.

    Profiles carry many more fields owned by other components; they are
    kept (extra="allow") so a round trip through the model loses nothing.
    """

    id: PyObjectId = Field(..., alias="_id")
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    email: Optional[str] = None
    role: Optional[str] = None
    is_active: bool = Field(True, alias="isActive")
    teams: List[PyObjectId] = []

    model_config = ConfigDict(populate_by_name=True, extra="allow")
