"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from zepno.api.errors import add_exception_handlers
from zepno.api.routes import router as api_router
from zepno.config import settings
from zepno.database.engine import close_db, init_db
from zepno.mock_provider.router import router as mock_provider_router
from zepno.webhook.handler import router as webhook_router

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hook."""
    logger.info("Starting %s …", settings.app_name)
    try:
        settings.validate_required()
    except ValueError as exc:
        if not settings.debug:
            raise
        logger.warning("%s (continuing in debug mode)", exc)
    await init_db()
    logger.info("Database initialised")
    yield
    logger.info("Shutting down %s …", settings.app_name)
    await close_db()


app = FastAPI(
    title=settings.app_name,
    description="Temporary numbers, OTP relay and prepaid wallet",
    version="0.1.0",
    lifespan=lifespan,
)

add_exception_handlers(app)
app.include_router(api_router)
app.include_router(webhook_router)
if settings.debug:
    app.include_router(mock_provider_router)


@app.get("/health")
async def health_check():
    """Simple liveness probe."""
    return {"status": "healthy", "app": settings.app_name}
