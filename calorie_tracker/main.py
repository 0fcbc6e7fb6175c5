"""
Calorie Tracker API — application entry point.

This is the **only** file that assembles the app.  Business logic lives in
the `api/`, `services/`, `models/` and `core/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from calorie_tracker.api.v1.api import api_router
from calorie_tracker.api.v1.endpoints import health
from calorie_tracker.core.config import settings
from calorie_tracker.core.exceptions import register_exception_handlers
from calorie_tracker.core.rate_limit import limiter
from calorie_tracker.db.base import Base
from calorie_tracker.db.session import async_session_factory, engine
from calorie_tracker.models import User
from calorie_tracker.models.user import ROLE_ADMIN
from calorie_tracker.services.users import create_user, username_taken

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


async def seed_first_admin() -> User | None:
    """Create the configured admin account if it does not exist yet."""
    if not settings.FIRST_ADMIN_USERNAME or settings.FIRST_ADMIN_PASSWORD is None:
        return None
    async with async_session_factory() as session:
        if await username_taken(session, settings.FIRST_ADMIN_USERNAME):
            return None
        admin = await create_user(
            session,
            username=settings.FIRST_ADMIN_USERNAME,
            password=settings.FIRST_ADMIN_PASSWORD.get_secret_value(),
            role=ROLE_ADMIN,
        )
    logger.info("Default admin created: %s (password: <redacted>)", admin.username)
    return admin


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    await seed_first_admin()

    logger.info("%s v%s started", settings.PROJECT_NAME, settings.VERSION)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Calorie tracking REST API",
        version=settings.VERSION,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # slowapi reads the limiter from app state
    application.state.limiter = limiter

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    application.include_router(health.router)
    application.include_router(api_router, prefix=settings.API_PREFIX)

    return application


app = create_app()
