"""Match request, match result and interview summary models."""

import enum
import uuid
from datetime import datetime
from sqlalchemy import String, Text, DateTime, ForeignKey, JSON, Integer, Float
from sqlalchemy.orm import Mapped, mapped_column

from mockmatch.core.database import Base
from mockmatch.core.timeutils import utcnow


class MatchStatus(str, enum.Enum):
    QUEUED = "QUEUED"
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"


class SessionFormat(str, enum.Enum):
    CODING = "CODING"
    SYSTEM_DESIGN = "SYSTEM_DESIGN"
    BEHAVIORAL = "BEHAVIORAL"
    MIXED = "MIXED"


class MatchRequest(Base):
    """A candidate's request for a mock interview."""

    __tablename__ = "match_requests"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    candidate_id: Mapped[str] = mapped_column(
        ForeignKey("candidate_profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    target_role: Mapped[str] = mapped_column(String(255), nullable=False)
    focus_areas: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    preferred_languages: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    session_format: Mapped[str] = mapped_column(String(32), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), default=MatchStatus.QUEUED.value, nullable=False, index=True
    )  # QUEUED, SCHEDULED, COMPLETED, EXPIRED

    matched_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<MatchRequest(id={self.id}, candidate_id={self.candidate_id}, status={self.status})>"


class InterviewMatch(Base):
    """Booking result; exactly one per match request."""

    __tablename__ = "interview_matches"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    request_id: Mapped[str] = mapped_column(
        ForeignKey("match_requests.id", ondelete="CASCADE"), nullable=False, unique=True)
    interviewer_id: Mapped[str] = mapped_column(
        ForeignKey("interviewer_profiles.id"), nullable=False, index=True)

    scheduled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True)
    room_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    room_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), default=MatchStatus.SCHEDULED.value, nullable=False, index=True
    )  # SCHEDULED, COMPLETED
    effectiveness_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<InterviewMatch(id={self.id}, request_id={self.request_id}, status={self.status})>"


class InterviewSummary(Base):
    """Post-interview feedback attached to a completed match."""

    __tablename__ = "interview_summaries"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    match_id: Mapped[str] = mapped_column(
        ForeignKey("interview_matches.id", ondelete="CASCADE"), nullable=False, unique=True)

    interviewer_notes: Mapped[str] = mapped_column(Text, nullable=False)
    candidate_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    strengths: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    improvements: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    rating: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    ai_highlights: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
