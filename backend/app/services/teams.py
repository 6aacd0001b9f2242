"""
Team Membership Service

Team lifecycle, membership mutation and the visibility cascade. Every write
that touches both the teams and the userProfiles collections runs as a named
cascade (see run_cascade). There is no cross-collection transaction: a
failed cascade step is logged with enough context to replay it, reported as
a CascadeError, and healed by the reconciliation job
(app.services.reconciliation), which recomputes userProfiles.teams from
team membership.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.core.exceptions import (
    CascadeError,
    ConflictError,
    ForbiddenError,
    InternalError,
    InvalidInputError,
    NotFoundError,
)
from app.core.metrics import (
    team_cascade_failures_total,
    team_cascade_runs_total,
    track_db_operation,
)
from app.core.permissions import PermissionChecker, Permissions, Roles
from app.models.requestor import Requestor
from app.models.team import Team, TeamMember
from app.repositories import TeamRepository, UserProfileRepository
from app.schemas.team import MembershipOperation
from app.services.events import (
    MEMBERSHIP_ASSIGNED,
    MEMBERSHIP_TEAM_DELETED,
    MEMBERSHIP_UNASSIGNED,
    MEMBERSHIP_VISIBILITY,
    MembershipChanged,
    MembershipEvents,
    membership_events,
)

logger = logging.getLogger(__name__)

CASCADE_ASSIGN = "assign_member"
CASCADE_UNASSIGN = "unassign_member"
CASCADE_DELETE_TEAM = "delete_team"
CASCADE_VISIBILITY = "visibility_cascade"

CascadeStep = Tuple[str, Callable[[], Awaitable[Any]]]


def is_valid_object_id(value: Optional[str]) -> bool:
    return isinstance(value, str) and ObjectId.is_valid(value)


def partition_visibility(
    team: Team, acting_user_id: str, visibility: bool
) -> Tuple[List[str], List[str]]:
    """
    Split every member except the acting user into (assign, unassign).

    The new visibility is mirrored onto all *other* members: when it is True
    they all land in assign, otherwise they all land in unassign. The acting
    user is never in either list.
    """
    others: List[str] = []
    for member in team.members:
        if member.user_id != acting_user_id and member.user_id not in others:
            others.append(member.user_id)

    if visibility:
        return others, []
    return [], others


async def run_cascade(
    name: str,
    steps: Sequence[CascadeStep],
    context: Dict[str, Any],
    concurrent: bool = True,
) -> Dict[str, Any]:
    """
    Run the steps of a named cascade and collect their results.

    Concurrent steps are all launched and all awaited. Sequential steps stop
    at the first failure; later steps are reported as skipped so nothing is
    written past a broken step. Any failure raises CascadeError after every
    failed step has been logged with the cascade context.

    Compensation: none in-line. Run TeamReconciler.reconcile() (or
    scripts/reconcile_teams.py) to restore userProfiles.teams.
    """
    team_cascade_runs_total.labels(cascade=name).inc()
    step_names = [step_name for step_name, _ in steps]
    outcomes: Dict[str, Any] = {}

    if concurrent:
        results = await asyncio.gather(
            *(step_fn() for _, step_fn in steps), return_exceptions=True
        )
        outcomes = dict(zip(step_names, results))
    else:
        for step_name, step_fn in steps:
            try:
                outcomes[step_name] = await step_fn()
            except Exception as e:
                outcomes[step_name] = e
                break

    failed = [s for s in step_names if isinstance(outcomes.get(s), Exception)]
    if not failed:
        return outcomes

    for step_name in failed:
        team_cascade_failures_total.labels(cascade=name, step=step_name).inc()
        logger.error(
            f"Cascade '{name}' step '{step_name}' failed: {outcomes[step_name]} "
            f"| context: {context}"
        )
    skipped = [s for s in step_names if s not in outcomes]
    if skipped:
        logger.error(f"Cascade '{name}' skipped steps {skipped} | context: {context}")

    raise CascadeError(name, failed, context)


class TeamMembershipService:
    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        permission_checker: PermissionChecker,
        events: MembershipEvents = membership_events,
    ):
        self.teams = TeamRepository(db)
        self.profiles = UserProfileRepository(db)
        self.permission_checker = permission_checker
        self.events = events

    async def _store_call(
        self, collection: str, op_name: str, call: Awaitable[Any], **context: Any
    ) -> Any:
        """
        Await a single repository call, turning driver errors into InternalError.

        context is free-form log detail and may carry its own "operation" key.
        """
        try:
            with track_db_operation(collection, op_name):
                return await call
        except DuplicateKeyError:
            raise
        except PyMongoError as e:
            logger.error(f"{collection}.{op_name} failed: {e} | context: {context}")
            raise InternalError(f"Database error during {op_name}", context) from e

    async def _authorize(self, requestor: Requestor, action: str, message: str) -> None:
        if not await self.permission_checker.check(requestor, action):
            raise ForbiddenError(
                message, {"requestorId": requestor.requestor_id, "action": action}
            )

    async def _get_team_or_404(self, team_id: str, message: str = "Team not found") -> Team:
        team = await self._store_call(
            "teams", "find_one", self.teams.get_by_id(team_id), teamId=team_id
        )
        if team is None:
            raise NotFoundError(message, {"teamId": team_id})
        return team

    # ------------------------------------------------------------------
    # Team lifecycle
    # ------------------------------------------------------------------

    async def list_teams(self) -> List[Team]:
        return await self._store_call("teams", "find", self.teams.list_sorted_by_name())

    async def get_team(self, team_id: str) -> Team:
        return await self._get_team_or_404(team_id)

    async def create_team(
        self, requestor: Requestor, team_name: str, is_active: bool
    ) -> Team:
        await self._authorize(
            requestor, Permissions.TEAM_CREATE, "You are not authorized to create teams."
        )

        conflict_message = f'Team Name "{team_name}" already exists'
        if await self._store_call(
            "teams", "find_one", self.teams.exists_by_name(team_name), teamName=team_name
        ):
            raise ConflictError(conflict_message, {"teamName": team_name})

        now = datetime.now(timezone.utc)
        team = Team(
            team_name=team_name,
            is_active=is_active,
            created_datetime=now,
            modified_datetime=now,
        )
        # The unique index on teamName closes the gap between check and insert
        try:
            await self._store_call(
                "teams", "insert_one", self.teams.create(team), teamName=team_name
            )
        except DuplicateKeyError:
            raise ConflictError(conflict_message, {"teamName": team_name})

        logger.info(
            f"Team '{team_name}' ({team.id}) created by {requestor.requestor_id}"
        )
        return team

    async def update_team(
        self,
        requestor: Requestor,
        team_id: str,
        team_name: str,
        is_active: bool,
        team_code: str,
    ) -> str:
        await self._authorize(
            requestor,
            Permissions.TEAM_UPDATE,
            "You are not authorized to make changes in the teams.",
        )
        team = await self._get_team_or_404(team_id)

        can_edit_team_code = requestor.role == Roles.OWNER or requestor.has_capability(
            Permissions.TEAM_EDIT_CODE
        )
        if not can_edit_team_code:
            raise ForbiddenError(
                "You are not authorized to edit team code.",
                {"requestorId": requestor.requestor_id, "teamId": team_id},
            )

        update_data = {
            "teamName": team_name,
            "isActive": is_active,
            "teamCode": team_code,
            "modifiedDatetime": datetime.now(timezone.utc),
        }
        try:
            await self._store_call(
                "teams", "update_one", self.teams.update(team.id, update_data),
                teamId=team_id, request=update_data,
            )
        except DuplicateKeyError:
            raise ConflictError(
                f'Team Name "{team_name}" already exists', {"teamName": team_name}
            )

        return team.id

    async def delete_team(self, requestor: Requestor, team_id: str) -> None:
        await self._authorize(
            requestor, Permissions.TEAM_DELETE, "You are not authorized to delete teams."
        )
        team = await self._get_team_or_404(team_id)

        await self.events.publish(
            MembershipChanged(team.id, tuple(team.member_ids()), MEMBERSHIP_TEAM_DELETED)
        )
        await run_cascade(
            CASCADE_DELETE_TEAM,
            [
                ("remove_team_from_profiles", lambda: self.profiles.remove_team_from_all(team.id)),
                ("delete_team", lambda: self.teams.delete(team.id)),
            ],
            {"teamId": team.id, "requestorId": requestor.requestor_id},
        )
        logger.info(f"Team '{team.team_name}' ({team.id}) deleted by {requestor.requestor_id}")

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    async def assign_or_unassign_member(
        self,
        requestor: Requestor,
        team_id: str,
        user_id: str,
        operation: MembershipOperation,
    ) -> Dict[str, Any]:
        """
        Add a user to a team or remove them, mirroring the change onto the
        user's profile.

        Returns {"newMember": <updated profile>} for Assign and
        {"result": "Delete Success"} for Unassign. Unassigning a user who is
        not a member is a successful no-op.
        """
        await self._authorize(
            requestor,
            Permissions.TEAM_ASSIGN_USERS,
            "You are not authorized to perform this operation",
        )

        if not is_valid_object_id(team_id):
            raise InvalidInputError("Invalid teamId", {"teamId": team_id})
        if not user_id:
            raise InvalidInputError("userId is required", {"teamId": team_id})
        try:
            operation = MembershipOperation(operation)
        except ValueError:
            raise InvalidInputError(
                f"Unknown operation '{operation}'", {"teamId": team_id, "userId": user_id}
            )

        await self._get_team_or_404(team_id, "Invalid team")
        context = {
            "teamId": team_id,
            "userId": user_id,
            "operation": operation.value,
            "requestorId": requestor.requestor_id,
        }

        if operation == MembershipOperation.ASSIGN:
            if await self._store_call(
                "userProfiles", "find_one", self.profiles.get_raw_by_id(user_id), **context
            ) is None:
                raise NotFoundError("User profile not found", context)

            await self.events.publish(
                MembershipChanged(team_id, (user_id,), MEMBERSHIP_ASSIGNED)
            )
            now = datetime.now(timezone.utc)
            member = TeamMember(user_id=user_id, add_date_time=now)
            outcomes = await run_cascade(
                CASCADE_ASSIGN,
                [
                    ("add_member", lambda: self.teams.add_member(team_id, member, now)),
                    ("add_team_to_profile", lambda: self.profiles.add_team(user_id, team_id)),
                ],
                context,
                concurrent=False,
            )
            logger.info(f"User {user_id} assigned to team {team_id}")
            return {"newMember": outcomes["add_team_to_profile"]}

        await self.events.publish(
            MembershipChanged(team_id, (user_id,), MEMBERSHIP_UNASSIGNED)
        )
        now = datetime.now(timezone.utc)
        await run_cascade(
            CASCADE_UNASSIGN,
            [
                ("remove_member", lambda: self.teams.remove_member(team_id, user_id, now)),
                ("remove_team_from_profile", lambda: self.profiles.remove_team(user_id, team_id)),
            ],
            context,
            concurrent=False,
        )
        logger.info(f"User {user_id} unassigned from team {team_id}")
        return {"result": "Delete Success"}

    async def get_team_membership(self, team_id: str) -> List[Dict[str, Any]]:
        """Each member's profile merged with their addDateTime. Order is unspecified."""
        if not is_valid_object_id(team_id):
            raise InvalidInputError("Invalid request", {"teamId": team_id})
        return await self._store_call(
            "teams", "aggregate", self.teams.get_membership(team_id), teamId=team_id
        )

    async def update_team_visibility(
        self, team_id: str, user_id: str, visibility: bool
    ) -> None:
        """
        Set one member's visible flag and mirror it onto every other member.

        The acting user's own profile is left untouched; every other member
        gets the team added to (visibility=True) or removed from
        (visibility=False) their profile.
        """
        team = await self._get_team_or_404(team_id)
        context = {"teamId": team_id, "userId": user_id, "visibility": visibility}

        if team.find_member(user_id) == -1:
            raise NotFoundError("Member not found in the team.", context)

        matched = await self._store_call(
            "teams",
            "update_one",
            self.teams.set_member_visibility(
                team.id, user_id, visibility, datetime.now(timezone.utc)
            ),
            **context,
        )
        if not matched:
            # Removed between the read and the write
            raise NotFoundError("Member not found in the team.", context)

        assign_ids, unassign_ids = partition_visibility(team, user_id, visibility)
        await self.events.publish(
            MembershipChanged(
                team.id, tuple(assign_ids + unassign_ids), MEMBERSHIP_VISIBILITY
            )
        )
        await run_cascade(
            CASCADE_VISIBILITY,
            [
                ("add_team_to_profiles", lambda: self.profiles.add_team_to_many(assign_ids, team.id)),
                ("remove_team_from_profiles", lambda: self.profiles.remove_team_from_many(unassign_ids, team.id)),
            ],
            context,
        )
        logger.info(
            f"Visibility of team {team_id} set to {visibility} by member {user_id}; "
            f"{len(assign_ids)} profiles assigned, {len(unassign_ids)} unassigned"
        )
