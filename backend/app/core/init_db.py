import logging

from pymongo import ASCENDING, IndexModel

from app.db.mongodb import get_database

logger = logging.getLogger(__name__)

INDEXES = {
    # The unique name index is what turns a racing duplicate create into a 409.
    "teams": [
        IndexModel([("teamName", ASCENDING)], unique=True, name="teamName_unique"),
        IndexModel([("members.userId", ASCENDING)]),
    ],
    "userProfiles": [IndexModel([("teams", ASCENDING)])],
}


async def create_indexes(db) -> None:
    for collection, indexes in INDEXES.items():
        names = await db[collection].create_indexes(indexes)
        logger.info("Ensured %s indexes on %s", ", ".join(names), collection)


async def init_db():
    await create_indexes(await get_database())
