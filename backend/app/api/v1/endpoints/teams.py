from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, status

from app.api import deps
from app.models.team import Team
from app.schemas.team import (
    DeleteResult,
    MembershipRecord,
    OperationResult,
    TeamCreate,
    TeamDelete,
    TeamMembershipUpdate,
    TeamResponse,
    TeamUpdate,
    TeamVisibilityUpdate,
)
from app.services.teams import TeamMembershipService

router = APIRouter()


@router.get("", response_model=List[TeamResponse])
async def read_teams(
    service: TeamMembershipService = Depends(deps.get_team_service),
) -> List[Team]:
    """
    List all teams, ordered by name.
    """
    return await service.list_teams()


@router.patch("/visibility", response_model=OperationResult)
async def update_team_visibility(
    visibility_in: TeamVisibilityUpdate,
    service: TeamMembershipService = Depends(deps.get_team_service),
):
    """
    Toggle a member's visibility flag and mirror it onto every other
    member's profile.
    """
    await service.update_team_visibility(
        visibility_in.team_id, visibility_in.user_id, visibility_in.visibility
    )
    return OperationResult(result="Done")


@router.get("/{team_id}", response_model=TeamResponse)
async def read_team(
    team_id: str,
    service: TeamMembershipService = Depends(deps.get_team_service),
) -> Team:
    """
    Get team details.
    """
    return await service.get_team(team_id)


@router.post("", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(
    team_in: TeamCreate,
    service: TeamMembershipService = Depends(deps.get_team_service),
) -> Team:
    """
    Create a new team. The name must not be taken.
    """
    return await service.create_team(team_in.requestor, team_in.team_name, team_in.is_active)


@router.put("/{team_id}", response_model=str)
async def update_team(
    team_id: str,
    team_in: TeamUpdate,
    service: TeamMembershipService = Depends(deps.get_team_service),
) -> str:
    """
    Update name, active flag and team code. Returns the team id.
    """
    return await service.update_team(
        team_in.requestor,
        team_id,
        team_in.team_name,
        team_in.is_active,
        team_in.team_code,
    )


@router.delete("/{team_id}", response_model=DeleteResult)
async def delete_team(
    team_id: str,
    team_in: TeamDelete = Body(...),
    service: TeamMembershipService = Depends(deps.get_team_service),
):
    """
    Delete a team and remove it from every user profile.
    """
    await service.delete_team(team_in.requestor, team_id)
    return DeleteResult(message="Team successfully deleted and user profiles updated")


@router.post("/{team_id}/members")
async def assign_team_member(
    team_id: str,
    member_in: TeamMembershipUpdate,
    service: TeamMembershipService = Depends(deps.get_team_service),
) -> Dict[str, Any]:
    """
    Assign a user to the team or unassign them.
    """
    return await service.assign_or_unassign_member(
        member_in.requestor, team_id, member_in.user_id, member_in.operation
    )


@router.get("/{team_id}/members", response_model=List[MembershipRecord])
async def read_team_membership(
    team_id: str,
    service: TeamMembershipService = Depends(deps.get_team_service),
) -> List[Dict[str, Any]]:
    """
    Members of the team, each merged with their user profile.
    """
    return await service.get_team_membership(team_id)
