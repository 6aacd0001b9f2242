"""Shared fixtures for API endpoint tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.models.team import Team
from tests.mocks.teams import TEAM_ID, USER_A, USER_B, make_team_doc


@pytest.fixture
def team():
    return Team(**make_team_doc(TEAM_ID, "Alpha", [USER_A, USER_B]))


@pytest.fixture
def team_service(team):
    """TeamMembershipService double with happy-path return values."""
    service = MagicMock()
    service.list_teams = AsyncMock(return_value=[team])
    service.get_team = AsyncMock(return_value=team)
    service.create_team = AsyncMock(return_value=team)
    service.update_team = AsyncMock(return_value=TEAM_ID)
    service.delete_team = AsyncMock(return_value=None)
    service.assign_or_unassign_member = AsyncMock(return_value={"result": "Delete Success"})
    service.get_team_membership = AsyncMock(return_value=[])
    service.update_team_visibility = AsyncMock(return_value=None)
    return service


@pytest.fixture
def requestor_body():
    return {"requestorId": USER_A, "role": "Owner", "permissions": {"frontPermissions": []}}
