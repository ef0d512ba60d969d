"""Main FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mockmatch import __version__
from mockmatch.api.errors import register_exception_handlers
from mockmatch.api.v1.endpoints.realtime import session_state_cache
from mockmatch.api.v1.router import api_router
from mockmatch.core.config import settings
from mockmatch.core.database import AsyncSessionLocal, Base, engine
from mockmatch.core.logging import setup_logging
from mockmatch.services.matching_automation import MatchingAutomation
from mockmatch.services.presence_service import PresenceService
from mockmatch.services.realtime.bus import realtime_bus

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # The cache must be listening before live sessions are re-announced
    session_state_cache.attach(realtime_bus)
    async with AsyncSessionLocal() as db:
        await PresenceService(bus=realtime_bus).restore_realtime_sessions(db)

    automation = None
    if settings.MATCH_AUTOMATION_ENABLED:
        automation = MatchingAutomation(AsyncSessionLocal, bus=realtime_bus)
        await automation.start()
        logger.info("Matching automation started")

    yield

    # Shutdown
    if automation is not None:
        await automation.stop()
    session_state_cache.detach()
    await engine.dispose()


app = FastAPI(
    title="MockMatch API",
    description="Mock interview matching, scheduling and live session presence",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "mockmatch"}
