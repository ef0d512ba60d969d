"""Match requests, interviewer previews, atomic scheduling and completion."""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mockmatch.core.config import settings
from mockmatch.core.exceptions import NotFoundError
from mockmatch.core.timeutils import as_utc, isoformat, utcnow
from mockmatch.models import (
    AvailabilitySlot,
    CandidateProfile,
    InterviewMatch,
    InterviewSummary,
    InterviewerProfile,
    MatchRequest,
)
from mockmatch.models.matching import MatchStatus
from mockmatch.schemas.events import MatchRequestCreatedEvent, SlotUpdateEvent
from mockmatch.schemas.matching import (
    AvailabilityWindow,
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
    MatchingSignals,
)
from mockmatch.services.livekit_service import LiveKitService, generate_room_name
from mockmatch.services.mappers import (
    candidate_to_summary,
    interviewer_to_summary,
    match_to_result,
    request_to_response,
    slot_to_response,
    summary_to_response,
)
from mockmatch.services.realtime.bus import RealtimeBus, realtime_bus
from mockmatch.services.scoring import calculate_matching_score

logger = logging.getLogger(__name__)

LEVEL_GAP_YEARS = 2


def _normalized(values: Optional[list[str]]) -> set[str]:
    return {value.strip().casefold() for value in values or [] if value and value.strip()}


def build_signals(
    request: MatchRequest,
    candidate: Optional[CandidateProfile],
    interviewer: InterviewerProfile,
) -> MatchingSignals:
    """Derive the scoring signals for one interviewer against a request."""
    specializations = _normalized(interviewer.specializations)
    focus_areas = _normalized(request.focus_areas)

    overlap = len(specializations & focus_areas) / len(focus_areas) if focus_areas else 0.0

    return MatchingSignals(
        profession_matched=request.target_role.strip().casefold() in specializations,
        tech_stack_overlap=overlap,
        language_matched=bool(
            _normalized(interviewer.languages) & _normalized(request.preferred_languages)),
        level_matched=(
            candidate is not None
            and interviewer.experience_years >= candidate.experience_years + LEVEL_GAP_YEARS
        ),
        timezone_matched=candidate is not None and interviewer.timezone == candidate.timezone,
    )


def default_rating(effectiveness_score: float) -> int:
    """Map a 0-100 effectiveness score onto a 0-5 rating, rounding half up."""
    return min(5, max(0, math.floor(effectiveness_score / 20 + 0.5)))


class MatchingService:
    """Drives match requests from QUEUED through SCHEDULED to COMPLETED."""

    def __init__(
        self,
        bus: Optional[RealtimeBus] = None,
        room_service: Optional[LiveKitService] = None,
    ):
        self.bus = bus or realtime_bus
        self.room_service = room_service

    @staticmethod
    def effective_status(request: MatchRequest, now: Optional[datetime] = None) -> str:
        """Stored status, with overdue QUEUED requests reported as EXPIRED."""
        if (
            request.status == MatchStatus.QUEUED.value
            and request.expires_at is not None
            and as_utc(request.expires_at) <= (now or utcnow())
        ):
            return MatchStatus.EXPIRED.value
        return request.status

    async def _to_response(self, db: AsyncSession, request: MatchRequest) -> MatchRequestResponse:
        result = await db.execute(
            select(InterviewMatch, InterviewerProfile, InterviewSummary)
            .join(InterviewerProfile, InterviewerProfile.id == InterviewMatch.interviewer_id)
            .outerjoin(InterviewSummary, InterviewSummary.match_id == InterviewMatch.id)
            .where(InterviewMatch.request_id == request.id)
        )
        row = result.first()
        match_result = match_to_result(*row) if row else None
        return request_to_response(request, self.effective_status(request), match_result)

    async def get_match_overview(self, db: AsyncSession) -> MatchOverview:
        now = utcnow()
        queued = await db.scalar(
            select(func.count()).select_from(MatchRequest).where(
                MatchRequest.status == MatchStatus.QUEUED.value,
                (MatchRequest.expires_at.is_(None)) | (MatchRequest.expires_at > now),
            )
        )
        scheduled = await db.scalar(
            select(func.count()).select_from(InterviewMatch).where(
                InterviewMatch.status == MatchStatus.SCHEDULED.value)
        )
        completed = await db.scalar(
            select(func.count()).select_from(InterviewMatch).where(
                InterviewMatch.status == MatchStatus.COMPLETED.value)
        )
        return MatchOverview(
            queued_requests=queued or 0,
            scheduled_matches=scheduled or 0,
            completed_matches=completed or 0,
        )

    async def list_candidates(self, db: AsyncSession) -> list[CandidateSummary]:
        result = await db.execute(
            select(CandidateProfile).order_by(CandidateProfile.created_at.asc())
        )
        return [candidate_to_summary(c) for c in result.scalars().all()]

    async def list_interviewers(self, db: AsyncSession) -> list[InterviewerSummary]:
        result = await db.execute(
            select(InterviewerProfile).order_by(InterviewerProfile.display_name.asc())
        )
        return [interviewer_to_summary(i) for i in result.scalars().all()]

    async def create_match_request(
        self,
        db: AsyncSession,
        payload: MatchRequestCreate,
    ) -> MatchRequestResponse:
        """
        Queue a new match request for a candidate.

        Raises:
            NotFoundError: Candidate does not exist
        """
        candidate = await db.get(CandidateProfile, payload.candidate_id)
        if not candidate:
            raise NotFoundError("Candidate", payload.candidate_id)

        request = MatchRequest(
            candidate_id=payload.candidate_id,
            target_role=payload.target_role,
            focus_areas=list(payload.focus_areas),
            preferred_languages=list(payload.preferred_languages),
            session_format=payload.session_format.value,
            notes=payload.notes,
            status=MatchStatus.QUEUED.value,
            expires_at=utcnow() + timedelta(hours=settings.MATCH_REQUEST_TTL_HOURS),
        )
        db.add(request)
        await db.commit()

        logger.info(f"Queued match request {request.id} for candidate {payload.candidate_id}")
        self.bus.emit_match_request_created(MatchRequestCreatedEvent(request_id=request.id))
        return request_to_response(request, self.effective_status(request))

    async def get_match_request(self, db: AsyncSession, request_id: str) -> MatchRequestResponse:
        request = await db.get(MatchRequest, request_id)
        if not request:
            raise NotFoundError("Match request", request_id)
        return await self._to_response(db, request)

    async def get_match_previews(self, db: AsyncSession, request_id: str) -> list[MatchPreview]:
        """
        Rank the top-rated interviewers against a request.

        Returns:
            Up to ``PREVIEW_INTERVIEWER_LIMIT`` previews ordered by interviewer
            rating, each with that interviewer's next upcoming slots
        """
        request = await db.get(MatchRequest, request_id)
        if not request:
            raise NotFoundError("Match request", request_id)

        candidate = await db.get(CandidateProfile, request.candidate_id)

        result = await db.execute(
            select(InterviewerProfile)
            .order_by(InterviewerProfile.rating.desc(), InterviewerProfile.display_name.asc())
            .limit(settings.PREVIEW_INTERVIEWER_LIMIT)
        )
        interviewers = result.scalars().all()

        now = utcnow()
        previews = []
        for interviewer in interviewers:
            slots = await db.execute(
                select(AvailabilitySlot)
                .where(
                    AvailabilitySlot.interviewer_id == interviewer.id,
                    AvailabilitySlot.start >= now,
                )
                .order_by(AvailabilitySlot.start.asc(), AvailabilitySlot.id.asc())
                .limit(settings.PREVIEW_SLOT_LIMIT)
            )
            windows = [
                AvailabilityWindow(id=s.id, start=isoformat(s.start), end=isoformat(s.end))
                for s in slots.scalars().all()
            ]
            previews.append(MatchPreview(
                interviewer=interviewer_to_summary(interviewer),
                score=calculate_matching_score(build_signals(request, candidate, interviewer)),
                availability=windows,
            ))

        return previews

    async def schedule_match(
        self,
        db: AsyncSession,
        request_id: str,
        availability_id: str,
        room_url: Optional[str] = None,
    ) -> MatchRequestResponse:
        """
        Book an availability slot for a match request.

        Claiming the slot, upserting the match and marking the request
        SCHEDULED commit together or not at all. The slot is claimed with a
        conditional DELETE, so of two callers racing for one slot exactly one
        sees a deleted row; the other gets NotFoundError and nothing changes.
        Rebooking an already completed match clears its completion data and
        summary.

        Args:
            db: Database session
            request_id: Match request to schedule (or reschedule)
            availability_id: Slot to consume
            room_url: Pre-provisioned room; when omitted and a room service is
                configured, a room is created and removed again on failure

        Returns:
            The scheduled request with its match result

        Raises:
            NotFoundError: Request or slot missing, request expired, or the
                slot was consumed by a concurrent call
        """
        slot = await db.get(AvailabilitySlot, availability_id)
        if not slot:
            raise NotFoundError("Availability slot", availability_id)

        request = await db.get(MatchRequest, request_id)
        if not request:
            raise NotFoundError("Match request", request_id)
        if self.effective_status(request) == MatchStatus.EXPIRED.value:
            raise NotFoundError(
                "Match request", request_id, message="Match request has expired")

        interviewer_id = slot.interviewer_id
        scheduled_at = slot.start
        consumed_slot = slot_to_response(slot)

        room_id = None
        if room_url is None and self.room_service is not None:
            room = await self.room_service.create_room(generate_room_name(request_id))
            room_url, room_id = room["room_url"], room["room_id"]

        try:
            claimed = await db.execute(
                delete(AvailabilitySlot).where(AvailabilitySlot.id == availability_id)
            )
            if claimed.rowcount != 1:
                raise NotFoundError(
                    "Availability slot",
                    availability_id,
                    message="Availability slot is no longer available",
                )

            result = await db.execute(
                select(InterviewMatch).where(InterviewMatch.request_id == request_id)
            )
            match = result.scalar_one_or_none()
            if match:
                match.interviewer_id = interviewer_id
                match.scheduled_at = scheduled_at
                match.room_url = room_url
                match.room_id = room_id
                match.status = MatchStatus.SCHEDULED.value
                # A rebooked interview has not happened yet
                match.completed_at = None
                match.effectiveness_score = 0.0
                await db.execute(
                    delete(InterviewSummary).where(InterviewSummary.match_id == match.id)
                )
            else:
                db.add(InterviewMatch(
                    request_id=request_id,
                    interviewer_id=interviewer_id,
                    scheduled_at=scheduled_at,
                    room_url=room_url,
                    room_id=room_id,
                    status=MatchStatus.SCHEDULED.value,
                    effectiveness_score=0.0,
                ))

            request.status = MatchStatus.SCHEDULED.value
            request.matched_at = utcnow()

            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.warning(
                f"Scheduling request {request_id} on slot {availability_id} failed: {e}")
            if room_id is not None:
                await self.room_service.delete_room(room_id)
            raise

        logger.info(
            f"Scheduled request {request_id} with interviewer {interviewer_id} "
            f"at {consumed_slot.start}")
        self.bus.emit_slot_update(SlotUpdateEvent(action="deleted", slot=consumed_slot))
        return await self._to_response(db, request)

    async def complete_match(
        self,
        db: AsyncSession,
        match_id: str,
        payload: CompleteMatch,
    ) -> MatchRequestResponse:
        """
        Close out a match and upsert its interview summary.

        When no rating is supplied it is derived from the effectiveness score.
        """
        match = await db.get(InterviewMatch, match_id)
        if not match:
            raise NotFoundError("Match", match_id)

        request = await db.get(MatchRequest, match.request_id)
        if not request:
            raise NotFoundError("Match request", match.request_id)

        rating = payload.rating if payload.rating is not None else default_rating(
            payload.effectiveness_score)

        try:
            match.status = MatchStatus.COMPLETED.value
            match.effectiveness_score = payload.effectiveness_score
            match.completed_at = utcnow()

            result = await db.execute(
                select(InterviewSummary).where(InterviewSummary.match_id == match_id)
            )
            summary = result.scalar_one_or_none()
            if summary is None:
                summary = InterviewSummary(match_id=match_id)
                db.add(summary)
            summary.interviewer_notes = payload.interviewer_notes
            summary.candidate_notes = payload.candidate_notes
            summary.strengths = list(payload.strengths)
            summary.improvements = list(payload.improvements)
            summary.rating = rating
            summary.ai_highlights = dict(payload.ai_highlights) if payload.ai_highlights else None

            request.status = MatchStatus.COMPLETED.value

            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(f"Completed match {match_id} with rating {rating}")
        return await self._to_response(db, request)

    async def create_match_token(
        self,
        db: AsyncSession,
        match_id: str,
        identity: str,
        name: Optional[str] = None,
    ) -> MatchToken:
        """Mint a join token for the match's conferencing room."""
        match = await db.get(InterviewMatch, match_id)
        if not match:
            raise NotFoundError("Match", match_id)
        if not match.room_id or self.room_service is None:
            raise NotFoundError("Room", match_id, message="Match has no conferencing room")

        token = self.room_service.create_access_token(
            room_name=match.room_id,
            participant_name=name or identity,
            participant_identity=identity,
        )
        return MatchToken(token=token, room_id=match.room_id, room_url=match.room_url)

    async def list_recent_sessions(self, db: AsyncSession, limit: int = 10) -> list[CompletedSession]:
        """Completed matches, most recently completed first."""
        result = await db.execute(
            select(InterviewMatch, MatchRequest, InterviewerProfile, InterviewSummary)
            .join(MatchRequest, MatchRequest.id == InterviewMatch.request_id)
            .join(InterviewerProfile, InterviewerProfile.id == InterviewMatch.interviewer_id)
            .outerjoin(InterviewSummary, InterviewSummary.match_id == InterviewMatch.id)
            .where(InterviewMatch.status == MatchStatus.COMPLETED.value)
            .order_by(InterviewMatch.completed_at.desc())
            .limit(limit)
        )
        return [
            CompletedSession(
                id=match.id,
                scheduled_at=isoformat(match.scheduled_at),
                completed_at=isoformat(match.completed_at),
                effectiveness_score=match.effectiveness_score,
                candidate_id=request.candidate_id,
                interviewer=interviewer_to_summary(interviewer),
                summary=summary_to_response(summary),
            )
            for match, request, interviewer, summary in result.all()
        ]

    async def get_interviewer_sessions(
        self,
        db: AsyncSession,
        interviewer_id: str,
        limit: int = 10,
    ) -> list[InterviewerSession]:
        """An interviewer's scheduled and completed matches, latest slot first."""
        result = await db.execute(
            select(InterviewMatch, MatchRequest, InterviewSummary)
            .join(MatchRequest, MatchRequest.id == InterviewMatch.request_id)
            .outerjoin(InterviewSummary, InterviewSummary.match_id == InterviewMatch.id)
            .where(
                InterviewMatch.interviewer_id == interviewer_id,
                InterviewMatch.status.in_([
                    MatchStatus.SCHEDULED.value,
                    MatchStatus.COMPLETED.value,
                ]),
            )
            .order_by(InterviewMatch.scheduled_at.desc())
            .limit(limit)
        )
        sessions = []
        for match, request, summary in result.all():
            sessions.append(InterviewerSession(
                id=match.id,
                status=match.status,
                scheduled_at=isoformat(match.scheduled_at),
                completed_at=isoformat(match.completed_at),
                effectiveness_score=match.effectiveness_score,
                candidate_id=request.candidate_id,
                target_role=request.target_role,
                focus_areas=list(request.focus_areas or []),
                preferred_languages=list(request.preferred_languages or []),
                summary=summary_to_response(summary),
            ))
        return sessions

    async def expire_stale_requests(self, db: AsyncSession) -> int:
        """Persist EXPIRED on overdue QUEUED requests; for an external sweeper."""
        now = utcnow()
        result = await db.execute(
            update(MatchRequest)
            .where(
                MatchRequest.status == MatchStatus.QUEUED.value,
                MatchRequest.expires_at.is_not(None),
                MatchRequest.expires_at <= now,
            )
            .values(status=MatchStatus.EXPIRED.value, updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        await db.commit()
        if result.rowcount:
            logger.info(f"Expired {result.rowcount} stale match requests")
        return result.rowcount
