"""Conversions from ORM rows to wire schemas.

Every mapper copies mutable JSON values, so the returned schema objects
never alias state held by the ORM identity map.
"""

import copy
from typing import Optional

from mockmatch.core.timeutils import isoformat
from mockmatch.models import (
    AvailabilitySlot,
    CandidateProfile,
    InterviewMatch,
    InterviewSummary,
    InterviewerProfile,
    MatchRequest,
    RealtimeSession,
    SessionParticipant,
)
from mockmatch.schemas.matching import (
    AvailabilitySlotResponse,
    CandidateSummary,
    InterviewSummaryResponse,
    InterviewerSummary,
    MatchRequestResponse,
    MatchResult,
)
from mockmatch.schemas.realtime import RealtimeSessionSnapshot, SessionParticipantSnapshot


def interviewer_to_summary(interviewer: InterviewerProfile) -> InterviewerSummary:
    return InterviewerSummary(
        id=interviewer.id,
        display_name=interviewer.display_name,
        timezone=interviewer.timezone,
        experience_years=interviewer.experience_years,
        languages=list(interviewer.languages or []),
        specializations=list(interviewer.specializations or []),
        rating=interviewer.rating,
    )


def candidate_to_summary(candidate: CandidateProfile) -> CandidateSummary:
    return CandidateSummary(
        id=candidate.id,
        display_name=candidate.display_name,
        timezone=candidate.timezone,
        experience_years=candidate.experience_years,
        preferred_roles=list(candidate.preferred_roles or []),
        preferred_languages=list(candidate.preferred_languages or []),
    )


def slot_to_response(slot: AvailabilitySlot) -> AvailabilitySlotResponse:
    return AvailabilitySlotResponse(
        id=slot.id,
        interviewer_id=slot.interviewer_id,
        start=isoformat(slot.start),
        end=isoformat(slot.end),
        is_recurring=slot.is_recurring,
        created_at=isoformat(slot.created_at),
    )


def summary_to_response(summary: Optional[InterviewSummary]) -> Optional[InterviewSummaryResponse]:
    if summary is None:
        return None
    return InterviewSummaryResponse(
        interviewer_notes=summary.interviewer_notes,
        candidate_notes=summary.candidate_notes,
        rating=summary.rating,
        strengths=list(summary.strengths or []),
        improvements=list(summary.improvements or []),
        ai_highlights=copy.deepcopy(summary.ai_highlights),
    )


def match_to_result(
    match: InterviewMatch,
    interviewer: InterviewerProfile,
    summary: Optional[InterviewSummary],
) -> MatchResult:
    return MatchResult(
        id=match.id,
        status=match.status,
        scheduled_at=isoformat(match.scheduled_at),
        room_url=match.room_url,
        room_id=match.room_id,
        effectiveness_score=match.effectiveness_score,
        interviewer=interviewer_to_summary(interviewer),
        completed_at=isoformat(match.completed_at),
        summary=summary_to_response(summary),
    )


def request_to_response(
    request: MatchRequest,
    status: str,
    result: Optional[MatchResult] = None,
) -> MatchRequestResponse:
    """Map a request; ``status`` is passed in because expiry is evaluated at read time."""
    return MatchRequestResponse(
        id=request.id,
        candidate_id=request.candidate_id,
        target_role=request.target_role,
        focus_areas=list(request.focus_areas or []),
        preferred_languages=list(request.preferred_languages or []),
        session_format=request.session_format,
        notes=request.notes,
        status=status,
        matched_at=isoformat(request.matched_at),
        expires_at=isoformat(request.expires_at),
        created_at=isoformat(request.created_at),
        updated_at=isoformat(request.updated_at),
        result=result,
    )


def participant_to_snapshot(participant: SessionParticipant) -> SessionParticipantSnapshot:
    return SessionParticipantSnapshot(
        id=participant.id,
        session_id=participant.session_id,
        user_id=participant.user_id,
        role=participant.role,
        joined_at=isoformat(participant.joined_at),
        last_seen_at=isoformat(participant.last_seen_at),
        left_at=isoformat(participant.left_at),
        connection_id=participant.connection_id,
        metadata=copy.deepcopy(participant.participant_metadata or {}),
    )


def session_to_snapshot(
    session: RealtimeSession,
    participants: list[SessionParticipant],
) -> RealtimeSessionSnapshot:
    return RealtimeSessionSnapshot(
        id=session.id,
        match_id=session.match_id,
        host_id=session.host_id,
        status=session.status,
        started_at=isoformat(session.started_at),
        ended_at=isoformat(session.ended_at),
        last_heartbeat=isoformat(session.last_heartbeat),
        metadata=copy.deepcopy(session.session_metadata or {}),
        participants=[participant_to_snapshot(p) for p in participants],
        created_at=isoformat(session.created_at),
        updated_at=isoformat(session.updated_at),
    )
