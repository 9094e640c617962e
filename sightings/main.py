"""
Sightings - revision-controlled observations and images

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from sightings.config import get_settings
from sightings.database import close_db, init_db
from sightings.api.v1 import router as api_v1_router
from sightings.api.errors import register_exception_handlers
from sightings.api.middleware.request_id import RequestIdMiddleware
from sightings.schemas.common import HealthResponse
from sightings.logging_config import configure_logging, get_logger

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Configures logging, prepares the schema on startup and disposes of
    the engine on shutdown.
    """
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info(
        "Starting %s v%s", settings.project_name, settings.version,
        extra={"environment": settings.environment},
    )
    await init_db()

    yield

    await close_db()
    logger.info("Stopped %s", settings.project_name)


app = FastAPI(
    title=settings.project_name,
    description="""
    Sightings

    Photo/location observations with a moderation workflow.

    ## Model

    - **Items** are stored as numbered, append-only revisions
    - At most one revision per item is **published**
    - Access follows the caller's roles: public, authenticated-user,
      validated-user, moderator, security-admin
    - The caller is identified by the `X-User-Id` header set by the
      upstream identity provider
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(RequestIdMiddleware, slow_request_ms=settings.slow_request_ms)
register_exception_handlers(app, debug=settings.debug)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Check application health."""
    return HealthResponse(version=settings.version)


@app.get("/", tags=["Root"])
async def root():
    """Service name, version and where the API lives."""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "api": {
            "v1": settings.api_v1_prefix,
        },
    }


app.include_router(
    api_v1_router,
    prefix=settings.api_v1_prefix,
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "sightings.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
