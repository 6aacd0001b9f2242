import asyncio
import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api import health
from app.api.v1.endpoints import teams, user_profiles
from app.core.cache import cache_service, profile_cache
from app.core.config import settings
from app.core.exceptions import TeamServiceError
from app.core.init_db import init_db
from app.core.metrics import PrometheusMiddleware, metrics_endpoint
from app.db.mongodb import close_mongo_connection, connect_to_mongo, get_database
from app.services.events import membership_events
from app.services.reconciliation import reconciliation_loop

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
    Team Tracker API for managing teams and keeping team membership in sync
    with user profiles.

    ## Features
    * **Teams**: Create, rename, activate and delete teams.
    * **Membership**: Assign and unassign users, with profile references kept consistent.
    * **Visibility**: Hide or show a member's team on the other members' profiles.
    * **Reconciliation**: Periodic repair of profile team references.
    """,
    version="0.1.0",
    openapi_url=f"{settings.API_STR}/openapi.json",
)

app.add_middleware(PrometheusMiddleware)

_reconciliation_task: Optional[asyncio.Task] = None


@app.exception_handler(TeamServiceError)
async def team_service_error_handler(request: Request, exc: TeamServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} {exc.context}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    # Malformed bodies are InvalidInput (400) with the same {"error": ...} shape.
    problems = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"] if part != "body")
        problems.append(f"{field}: {err['msg']}" if field else err["msg"])
    message = "; ".join(problems) or "Invalid request"
    logger.info(f"{request.method} {request.url.path} rejected (400): {message}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


@app.on_event("startup")
async def startup_event():
    global _reconciliation_task
    await connect_to_mongo()
    await init_db()
    membership_events.subscribe(profile_cache.on_membership_changed)
    if settings.RECONCILIATION_INTERVAL_MINUTES > 0:
        db = await get_database()
        _reconciliation_task = asyncio.create_task(
            reconciliation_loop(db, settings.RECONCILIATION_INTERVAL_MINUTES)
        )
        logger.info(
            f"Team reconciliation scheduled every {settings.RECONCILIATION_INTERVAL_MINUTES} minutes"
        )


@app.on_event("shutdown")
async def shutdown_event():
    global _reconciliation_task
    if _reconciliation_task:
        _reconciliation_task.cancel()
        try:
            await _reconciliation_task
        except asyncio.CancelledError:
            pass
        _reconciliation_task = None
    membership_events.unsubscribe(profile_cache.on_membership_changed)
    await cache_service.close()
    await close_mongo_connection()


app.add_route("/metrics", metrics_endpoint, methods=["GET"])
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(teams.router, prefix=f"{settings.API_STR}/team", tags=["teams"])
app.include_router(user_profiles.router, prefix=f"{settings.API_STR}/userProfile", tags=["user-profiles"])


@app.get("/")
async def root():
    return {"message": "Welcome to Team Tracker API"}
