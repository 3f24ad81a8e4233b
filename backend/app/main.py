"""Lanes FastAPI application.

Entry point for the backend server: four-lane tasks, delegation to contacts
and linked teammates, gamification and the weekly review.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.health import router as health_router
from app.api.v1.auth import router as auth_router
from app.api.v1.contacts import router as contacts_router
from app.api.v1.delegation import router as delegation_router
from app.api.v1.review import router as review_router
from app.api.v1.stats import router as stats_router
from app.api.v1.support import router as support_router
from app.api.v1.sync import router as sync_router
from app.api.v1.tasks import router as tasks_router
from app.api.v1.team import router as team_router
from app.config import settings
from app.db.database import create_db_and_tables
from app.errors import LanesError
from app.middleware.auth import BearerAuthMiddleware
from app.middleware.rate_limit import RateLimitMiddleware

# Import all SQL models so SQLModel metadata registers them
from app.models.stats import UserStats  # noqa: F401
from app.models.task import DelegationNote, FocusSession, Subtask, Task  # noqa: F401
from app.models.team import Contact, TeamInvite, TeamMember  # noqa: F401
from app.models.user import User  # noqa: F401

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    create_db_and_tables()
    logger.info("Lanes backend started (database=%s)", settings.database_url.split("://", 1)[0])
    yield


app = FastAPI(
    title="Lanes",
    description="Four-lane task manager with team delegation and streaks",
    version=VERSION,
    lifespan=lifespan,
)

# Middleware (order matters: last added = outermost)
# Request path: CORS -> rate limit -> bearer auth -> routes. CORS must see
# preflights first since they never carry credentials.
app.add_middleware(BearerAuthMiddleware)
app.add_middleware(
    RateLimitMiddleware,
    global_rpm=settings.rate_limit_global_rpm,
    auth_rpm=settings.rate_limit_auth_rpm,
    idle_seconds=settings.rate_limit_idle_seconds,
    max_clients=settings.rate_limit_max_clients,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.exception_handler(LanesError)
async def domain_exception_handler(request: Request, exc: LanesError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Global exception handler — prevent internal details from leaking
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    # Let FastAPI handle HTTPExceptions normally (preserves status codes like 404, 503)
    if isinstance(exc, HTTPException):
        raise exc
    logger.error("Unhandled exception on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error."},
    )


# Routes
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(tasks_router)
app.include_router(contacts_router)
app.include_router(delegation_router)
app.include_router(team_router)
app.include_router(stats_router)
app.include_router(review_router)
app.include_router(sync_router)
app.include_router(support_router)


@app.get("/")
async def root():
    return {"name": "Lanes", "version": VERSION, "status": "running"}
