"""
Sentinel FastAPI Application.

Receives GitHub webhooks and exposes admin and alert endpoints. Queue workers
run in a separate process (``sentinel worker``).
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sentinel import __version__
from sentinel.api.routes import admin, alerts, webhooks
from sentinel.config import settings
from sentinel.logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and report database status on startup."""
    setup_logging(context="api")

    from sentinel.db.connection import check_connection

    if check_connection():
        logger.info("✓ Database connection OK")
    else:
        logger.warning("Database unavailable at startup")

    if not settings.github_webhook_secret:
        logger.warning("GITHUB_WEBHOOK_SECRET not set: all webhooks will be rejected")

    logger.info("Application startup complete")

    yield

    logger.info("Application shutdown complete")


app = FastAPI(
    lifespan=lifespan,
    title="Sentinel API",
    description="AI code attribution and alerting for GitHub repositories",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.app_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint - API health check."""
    return {
        "status": "ok",
        "message": "Sentinel API is running",
        "version": __version__,
    }


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    from sentinel.db.connection import check_connection

    db_status = "healthy" if check_connection() else "unhealthy"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "database": db_status,
    }


app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
app.include_router(admin.router, prefix="/admin", tags=["admin"])
app.include_router(alerts.router, prefix="/alerts", tags=["alerts"])
