"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from qa_center.core.config import settings, validate_settings
from qa_center.core.database import init_db, close_db, AsyncSessionLocal
from qa_center.core.middleware import RequestLogMiddleware
from qa_center.audio.router import router as audio_router, close_audio_http_client
from qa_center.auth.router import router as auth_router
from qa_center.billing.router import router as billing_router
from qa_center.credits.router import router as credits_router
from qa_center.criteria.router import router as criteria_router
from qa_center.interactions.router import router as interactions_router
from qa_center.scheduler.router import router as scheduler_router
from qa_center.scheduler.service import scheduler_service
from qa_center.teams.router import router as teams_router
from qa_center.users.router import router as users_router


# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting application...")
    validate_settings(settings)
    await init_db()

    if settings.scheduler_enabled:
        async with AsyncSessionLocal() as db:
            await scheduler_service.initialize(db)
        scheduler_service.start()

    yield

    # Shutdown
    logger.info("Shutting down application...")
    scheduler_service.shutdown()
    await close_audio_http_client()
    await close_db()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

if settings.log_requests:
    app.add_middleware(RequestLogMiddleware)

for api_router in (
    auth_router,
    users_router,
    teams_router,
    credits_router,
    billing_router,
    criteria_router,
    scheduler_router,
    interactions_router,
    audio_router,
):
    app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "scheduler": {
            "enabled": settings.scheduler_enabled,
            "running": scheduler_service.scheduler.running,
            "jobs": len(scheduler_service.active_profile_ids()),
        },
    }
