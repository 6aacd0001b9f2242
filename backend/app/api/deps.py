from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.cache import ProfileCache, profile_cache
from app.core.permissions import PermissionChecker
from app.db.mongodb import get_database
from app.services.events import membership_events
from app.services.teams import TeamMembershipService
from app.services.user_profiles import UserProfileService

_permission_checker = PermissionChecker()


def get_permission_checker() -> PermissionChecker:
    return _permission_checker


def get_profile_cache() -> ProfileCache:
    return profile_cache


async def get_team_service(
    db: AsyncIOMotorDatabase = Depends(get_database),
    permission_checker: PermissionChecker = Depends(get_permission_checker),
) -> TeamMembershipService:
    return TeamMembershipService(db, permission_checker, membership_events)


async def get_user_profile_service(
    db: AsyncIOMotorDatabase = Depends(get_database),
    cache: ProfileCache = Depends(get_profile_cache),
) -> UserProfileService:
    return UserProfileService(db, cache)
