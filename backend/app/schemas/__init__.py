"""
Schema Exports

Request and response bodies of the team API.
"""

from app.schemas.team import (
    DeleteResult,
    MembershipOperation,
    MembershipRecord,
    OperationResult,
    TeamCreate,
    TeamDelete,
    TeamMembershipUpdate,
    TeamMemberSchema,
    TeamResponse,
    TeamUpdate,
    TeamVisibilityUpdate,
)

__all__ = [
    "DeleteResult",
    "MembershipOperation",
    "MembershipRecord",
    "OperationResult",
    "TeamCreate",
    "TeamDelete",
    "TeamMembershipUpdate",
    "TeamMemberSchema",
    "TeamResponse",
    "TeamUpdate",
    "TeamVisibilityUpdate",
]
