"""Main API v1 router."""

from fastapi import APIRouter

from mockmatch.api.v1.endpoints import matching, realtime, sessions

api_router = APIRouter()

api_router.include_router(matching.router, prefix="/matching", tags=["matching"])
api_router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
api_router.include_router(realtime.router, prefix="/ws", tags=["realtime"])
