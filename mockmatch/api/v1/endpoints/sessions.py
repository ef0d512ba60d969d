"""Realtime session presence endpoints."""

import logging
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from mockmatch.api.v1.dependencies import get_presence_service
from mockmatch.core.database import get_db
from mockmatch.schemas.realtime import (
    RealtimeSessionCreate,
    RealtimeSessionSnapshot,
    SessionHeartbeat,
    SessionJoin,
    SessionLeave,
    SessionListQuery,
    SessionParticipantSnapshot,
    SessionStatusUpdate,
)
from mockmatch.services.presence_service import PresenceService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[RealtimeSessionSnapshot])
async def list_sessions(
    query: SessionListQuery = Depends(),
    db: AsyncSession = Depends(get_db),
    service: PresenceService = Depends(get_presence_service),
):
    """List sessions, newest first."""
    return await service.list_realtime_sessions(db, query)


@router.get("/{session_id}", response_model=RealtimeSessionSnapshot)
async def get_session(
    session_id: str,
    db: AsyncSession = Depends(get_db),
    service: PresenceService = Depends(get_presence_service),
):
    return await service.get_realtime_session_by_id(db, session_id)


@router.post("/", response_model=RealtimeSessionSnapshot, status_code=status.HTTP_201_CREATED)
async def create_session(
    payload: RealtimeSessionCreate,
    db: AsyncSession = Depends(get_db),
    service: PresenceService = Depends(get_presence_service),
):
    return await service.create_realtime_session(db, payload)


@router.post(
    "/{session_id}/join",
    response_model=SessionParticipantSnapshot,
    status_code=status.HTTP_201_CREATED,
)
async def join_session(
    session_id: str,
    payload: SessionJoin,
    db: AsyncSession = Depends(get_db),
    service: PresenceService = Depends(get_presence_service),
):
    return await service.join_realtime_session(db, session_id, payload)


@router.post("/{session_id}/leave")
async def leave_session(
    session_id: str,
    payload: SessionLeave,
    db: AsyncSession = Depends(get_db),
    service: PresenceService = Depends(get_presence_service),
):
    success = await service.leave_realtime_session(db, session_id, payload.participant_id)
    if not success:
        logger.warning(
            f"Leave rejected: participant {payload.participant_id} not in session {session_id}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session or participant not found",
        )
    return {"success": success}


@router.post("/{session_id}/heartbeat", response_model=RealtimeSessionSnapshot)
async def heartbeat_session(
    session_id: str,
    payload: SessionHeartbeat,
    db: AsyncSession = Depends(get_db),
    service: PresenceService = Depends(get_presence_service),
):
    return await service.heartbeat_realtime_session(db, session_id, payload)


@router.patch("/{session_id}/status", response_model=RealtimeSessionSnapshot)
async def update_session_status(
    session_id: str,
    payload: SessionStatusUpdate,
    db: AsyncSession = Depends(get_db),
    service: PresenceService = Depends(get_presence_service),
):
    return await service.update_realtime_session_status(db, session_id, payload)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_session(
    session_id: str,
    db: AsyncSession = Depends(get_db),
    service: PresenceService = Depends(get_presence_service),
):
    removed = await service.remove_realtime_session(db, session_id)
    if not removed:
        logger.warning(f"Delete requested for unknown session {session_id}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
