"""Matching, scheduling and availability endpoints."""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from mockmatch.api.v1.dependencies import get_availability_service, get_matching_service
from mockmatch.core.database import get_db
from mockmatch.schemas.matching import (
    AvailabilityCreate,
    AvailabilitySlotResponse,
    CandidateSummary,
    CompleteMatch,
    CompletedSession,
    InterviewerSession,
    InterviewerSummary,
    MatchOverview,
    MatchPreview,
    MatchRequestCreate,
    MatchRequestResponse,
    MatchToken,
    ScheduleMatch,
)
from mockmatch.services.availability_service import AvailabilityService
from mockmatch.services.matching_service import MatchingService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/overview", response_model=MatchOverview)
async def get_overview(
    db: AsyncSession = Depends(get_db),
    service: MatchingService = Depends(get_matching_service),
):
    """Counts of queued requests, scheduled and completed matches."""
    return await service.get_match_overview(db)


@router.get("/candidates", response_model=list[CandidateSummary])
async def list_candidates(
    db: AsyncSession = Depends(get_db),
    service: MatchingService = Depends(get_matching_service),
):
    return await service.list_candidates(db)


@router.get("/interviewers", response_model=list[InterviewerSummary])
async def list_interviewers(
    db: AsyncSession = Depends(get_db),
    service: MatchingService = Depends(get_matching_service),
):
    return await service.list_interviewers(db)


@router.post("/requests", response_model=MatchRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_match_request(
    payload: MatchRequestCreate,
    db: AsyncSession = Depends(get_db),
    service: MatchingService = Depends(get_matching_service),
):
    """Queue a match request for a candidate."""
    return await service.create_match_request(db, payload)


@router.get("/requests/{request_id}", response_model=MatchRequestResponse)
async def get_match_request(
    request_id: str,
    db: AsyncSession = Depends(get_db),
    service: MatchingService = Depends(get_matching_service),
):
    return await service.get_match_request(db, request_id)


@router.get("/requests/{request_id}/previews", response_model=list[MatchPreview])
async def get_match_previews(
    request_id: str,
    db: AsyncSession = Depends(get_db),
    service: MatchingService = Depends(get_matching_service),
):
    """Top-rated interviewers scored against the request."""
    return await service.get_match_previews(db, request_id)


@router.post("/requests/{request_id}/schedule", response_model=MatchRequestResponse)
async def schedule_match(
    request_id: str,
    payload: ScheduleMatch,
    db: AsyncSession = Depends(get_db),
    service: MatchingService = Depends(get_matching_service),
):
    """Book an availability slot for the request."""
    return await service.schedule_match(
        db, request_id, payload.availability_id, room_url=payload.room_url)


@router.post("/matches/{match_id}/complete", response_model=MatchRequestResponse)
async def complete_match(
    match_id: str,
    payload: CompleteMatch,
    db: AsyncSession = Depends(get_db),
    service: MatchingService = Depends(get_matching_service),
):
    return await service.complete_match(db, match_id, payload)


@router.get("/matches/{match_id}/token", response_model=MatchToken)
async def get_match_token(
    match_id: str,
    identity: str = Query(..., min_length=1),
    name: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: MatchingService = Depends(get_matching_service),
):
    """Join token for the match's conferencing room."""
    return await service.create_match_token(db, match_id, identity, name)


@router.get("/interviewers/{interviewer_id}/availability", response_model=list[AvailabilitySlotResponse])
async def list_availability(
    interviewer_id: str,
    db: AsyncSession = Depends(get_db),
    service: AvailabilityService = Depends(get_availability_service),
):
    return await service.list_availability(db, interviewer_id)


@router.post(
    "/interviewers/{interviewer_id}/availability",
    response_model=AvailabilitySlotResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_availability(
    interviewer_id: str,
    payload: AvailabilityCreate,
    db: AsyncSession = Depends(get_db),
    service: AvailabilityService = Depends(get_availability_service),
):
    return await service.create_availability(
        db, interviewer_id, payload.start, payload.end, payload.is_recurring)


@router.delete("/availability/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_availability(
    slot_id: str,
    db: AsyncSession = Depends(get_db),
    service: AvailabilityService = Depends(get_availability_service),
):
    deleted = await service.delete_availability(db, slot_id)
    if not deleted:
        logger.warning(f"Delete requested for unknown availability slot {slot_id}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Availability slot not found",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/sessions/recent", response_model=list[CompletedSession])
async def list_recent_sessions(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    service: MatchingService = Depends(get_matching_service),
):
    return await service.list_recent_sessions(db, limit)


@router.get("/interviewers/{interviewer_id}/sessions", response_model=list[InterviewerSession])
async def get_interviewer_sessions(
    interviewer_id: str,
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    service: MatchingService = Depends(get_matching_service),
):
    return await service.get_interviewer_sessions(db, interviewer_id, limit)
