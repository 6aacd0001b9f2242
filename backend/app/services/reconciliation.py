"""
Team Reconciliation

Cross-collection writes between teams and userProfiles are not
transactional, so a failed cascade can leave userProfiles.teams out of step
with team membership. The reconciler recomputes the profile side from the
team side, which is authoritative:

- visible members hold the team id in their profile
- hidden members do not
- profiles of non-members do not
- no profile references a team that no longer exists

Every write is an $addToSet or $pull, so a pass is idempotent and safe to run
while the API is serving requests.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.metrics import (
    team_reconciliation_fixes_total,
    team_reconciliation_runs_total,
)
from app.repositories import TeamRepository, UserProfileRepository

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationReport:
    teams_scanned: int = 0
    profiles_added: int = 0
    profiles_removed: int = 0
    non_members_removed: int = 0
    dangling_cleared: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    @property
    def total_fixes(self) -> int:
        return (
            self.profiles_added
            + self.profiles_removed
            + self.non_members_removed
            + self.dangling_cleared
        )


def split_by_visibility(members: Iterable[Dict[str, Any]]) -> Tuple[List[str], List[str]]:
    """
    (visible, hidden) user ids of a raw members list.

    A user with several entries counts as visible if any entry is visible.
    """
    visible: List[str] = []
    hidden: List[str] = []
    for member in members:
        user_id = member.get("userId")
        if user_id is None:
            continue
        user_id = str(user_id)
        if member.get("visible", True):
            if user_id not in visible:
                visible.append(user_id)
        elif user_id not in hidden:
            hidden.append(user_id)

    hidden = [u for u in hidden if u not in visible]
    return visible, hidden


class TeamReconciler:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.teams = TeamRepository(db)
        self.profiles = UserProfileRepository(db)

    async def reconcile_team(self, team_doc: Dict[str, Any], report: ReconciliationReport) -> None:
        team_id = str(team_doc["_id"])
        visible, hidden = split_by_visibility(team_doc.get("members", []))

        report.profiles_added += await self.profiles.add_team_to_many(visible, team_id)
        report.profiles_removed += await self.profiles.remove_team_from_many(hidden, team_id)
        report.non_members_removed += await self.profiles.remove_team_from_non_members(
            team_id, visible + hidden
        )

    async def reconcile(self) -> ReconciliationReport:
        """Run one full pass over all teams. Returns what was changed."""
        report = ReconciliationReport()
        team_ids: List[str] = []

        async for team_doc in self.teams.iterate_memberships():
            team_ids.append(str(team_doc["_id"]))
            report.teams_scanned += 1
            await self.reconcile_team(team_doc, report)

        report.dangling_cleared = await self.profiles.remove_teams_except(team_ids)

        team_reconciliation_runs_total.inc()
        team_reconciliation_fixes_total.labels(kind="added").inc(report.profiles_added)
        team_reconciliation_fixes_total.labels(kind="removed").inc(report.profiles_removed)
        team_reconciliation_fixes_total.labels(kind="non_member").inc(report.non_members_removed)
        team_reconciliation_fixes_total.labels(kind="dangling").inc(report.dangling_cleared)

        if report.total_fixes:
            logger.warning(f"Team reconciliation repaired drift: {report.to_dict()}")
        else:
            logger.info(f"Team reconciliation found no drift ({report.teams_scanned} teams)")
        return report


async def reconciliation_loop(db: AsyncIOMotorDatabase, interval_minutes: int):
    """Run reconciliation forever, every interval_minutes."""
    reconciler = TeamReconciler(db)
    while True:
        try:
            await reconciler.reconcile()
        except Exception as e:
            logger.error(f"Team reconciliation failed: {e}")
        await asyncio.sleep(interval_minutes * 60)
