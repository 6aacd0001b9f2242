from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from app.api import deps
from app.services.user_profiles import UserProfileService

router = APIRouter()


@router.get("/teammembers/{user_id}")
async def read_team_members_of_user(
    user_id: str,
    service: UserProfileService = Depends(deps.get_user_profile_service),
) -> List[Dict[str, Any]]:
    """
    Everyone who shares a team with the user.
    """
    return await service.get_team_members_of_user(user_id)


@router.get("/{user_id}")
async def read_user_profile(
    user_id: str,
    service: UserProfileService = Depends(deps.get_user_profile_service),
) -> Dict[str, Any]:
    """
    A single user profile, served from the profile cache when possible.
    """
    return await service.get_profile(user_id)
