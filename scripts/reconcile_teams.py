#!/usr/bin/env python3
"""
Team membership reconciliation

Repairs userProfiles.teams so it agrees with the members of every team:

1. Visible members hold the team id in their profile
2. Hidden members and non-members do not
3. References to teams that no longer exist are removed

Safe to run while the API is serving requests; every write is idempotent.

Usage:
    python scripts/reconcile_teams.py [--ensure-indexes]
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from app.core.config import settings
from app.core.init_db import create_indexes
from app.services.reconciliation import TeamReconciler

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def reconcile_teams(ensure_indexes: bool = False) -> bool:
    logger.info("=" * 80)
    logger.info("Team Membership Reconciliation")
    logger.info("=" * 80)

    client = AsyncIOMotorClient(settings.MONGODB_URL)
    db = client[settings.DATABASE_NAME]

    try:
        if ensure_indexes:
            await create_indexes(db)

        report = await TeamReconciler(db).reconcile()
    except PyMongoError as e:
        logger.error(f"Reconciliation aborted: {e}")
        return False
    finally:
        client.close()

    logger.info(f"Teams scanned:              {report.teams_scanned}")
    logger.info(f"Profiles given the team:    {report.profiles_added}")
    logger.info(f"Hidden members cleared:     {report.profiles_removed}")
    logger.info(f"Non-members cleared:        {report.non_members_removed}")
    logger.info(f"Dangling references pruned: {report.dangling_cleared}")
    return True


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Reconcile user profile team references with team membership")
    parser.add_argument("--ensure-indexes", action="store_true", help="Create collection indexes before reconciling")

    args = parser.parse_args()

    success = asyncio.run(reconcile_teams(ensure_indexes=args.ensure_indexes))
    sys.exit(0 if success else 1)
