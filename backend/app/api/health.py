import logging
from typing import Tuple

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from app.core.cache import cache_service
from app.db.mongodb import db

logger = logging.getLogger(__name__)

router = APIRouter()


async def _check_mongo() -> Tuple[bool, str]:
    if db.client is None:
        return False, "client_not_initialized"
    try:
        await db.client.admin.command("ping")
    except Exception as e:
        logger.warning("Readiness ping to MongoDB failed: %s", e)
        return False, f"error: {e}"
    return True, "connected"


async def _check_cache() -> str:
    # Profile reads fall back to MongoDB, so Redis never gates readiness.
    health = await cache_service.health_check()
    if health.get("status") == "healthy":
        return "connected"
    return "unavailable (degraded mode)"


@router.get("/live", summary="Liveness Probe")
async def liveness():
    return {"status": "alive"}


@router.get("/ready", summary="Readiness Probe")
async def readiness():
    """Ready once MongoDB answers a ping. Cache state is reported only."""
    mongo_ok, mongo_state = await _check_mongo()
    components = {"database": mongo_state, "cache": await _check_cache()}

    if mongo_ok:
        return {"status": "ready", "components": components}
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "not_ready", "components": components},
    )
