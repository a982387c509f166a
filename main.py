"""
Recurring Billing Scheduler - FastAPI Application Entry Point

Hosts the admin trigger endpoints for the billing jobs. The jobs themselves
run on Celery beat (see billing_scheduler.celery_app).
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from billing_scheduler.config import settings
from billing_scheduler.database import init_db, close_db
from billing_scheduler.routers import admin_scheduler
from billing_scheduler.utils.error_handling import setup_exception_handlers

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info(f"Starting {settings.app_name}...")
    logger.info(f"Environment: {settings.app_env}")

    # Initialize database (dev only - use migrations in production)
    if settings.is_development:
        await init_db()
        logger.info("Database tables initialized")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")
    await close_db()
    logger.info("Database connections closed")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Recurring invoice generation and tenant billing maintenance jobs",
    version="0.1.0",
    docs_url="/api/docs" if settings.is_development else None,
    redoc_url="/api/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

setup_exception_handlers(app)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(admin_scheduler.router, prefix=f"/api/{settings.api_version}")
