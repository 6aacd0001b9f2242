"""
Permission System Constants and Helpers

Action names match the capability strings stored on roles and on a user's
frontPermissions list, so the same vocabulary is used by the frontend and
by the backend checks.
"""

import logging
from typing import Dict, List

from app.models.requestor import Requestor

logger = logging.getLogger(__name__)


class Permissions:
    """All team-related actions a requestor can be authorized for."""

    # ==========================================================================
    # Team Management
    # ==========================================================================
    TEAM_CREATE = "postTeam"
    TEAM_UPDATE = "putTeam"
    TEAM_DELETE = "deleteTeam"
    TEAM_ASSIGN_USERS = "assignTeamToUsers"
    TEAM_EDIT_CODE = "editTeamCode"


class Roles:
    OWNER = "Owner"
    ADMINISTRATOR = "Administrator"
    MANAGER = "Manager"
    MENTOR = "Mentor"
    VOLUNTEER = "Volunteer"


ALL_PERMISSIONS: List[str] = [
    Permissions.TEAM_CREATE,
    Permissions.TEAM_UPDATE,
    Permissions.TEAM_DELETE,
    Permissions.TEAM_ASSIGN_USERS,
    Permissions.TEAM_EDIT_CODE,
]


# =============================================================================
# Role Presets
# =============================================================================

ROLE_PERMISSIONS: Dict[str, List[str]] = {
    Roles.OWNER: ALL_PERMISSIONS.copy(),
    Roles.ADMINISTRATOR: [
        Permissions.TEAM_CREATE,
        Permissions.TEAM_UPDATE,
        Permissions.TEAM_DELETE,
        Permissions.TEAM_ASSIGN_USERS,
    ],
    Roles.MANAGER: [
        Permissions.TEAM_UPDATE,
        Permissions.TEAM_ASSIGN_USERS,
    ],
    Roles.MENTOR: [],
    Roles.VOLUNTEER: [],
}


# =============================================================================
# Helper Functions
# =============================================================================


def has_permission(user_permissions: List[str], action: str) -> bool:
    """True when the granted permissions include the action."""
    return action in user_permissions


class PermissionChecker:
    """
    Answers "can this requestor perform this action".

    The check is async so a role store can back it without changing callers.
    """

    def __init__(self, role_permissions: Dict[str, List[str]] = None):
        self.role_permissions = role_permissions or ROLE_PERMISSIONS

    async def check(self, requestor: Requestor, action: str) -> bool:
        granted = list(self.role_permissions.get(requestor.role, []))
        granted.extend(requestor.permissions.front_permissions)
        allowed = has_permission(granted, action)
        if not allowed:
            logger.info(
                f"Permission '{action}' denied for requestor "
                f"{requestor.requestor_id} (role: {requestor.role})"
            )
        return allowed
