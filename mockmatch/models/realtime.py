"""Realtime session and participant models."""

import enum
import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column

from mockmatch.core.database import Base
from mockmatch.core.timeutils import utcnow


class RealtimeSessionStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"
    CANCELLED = "CANCELLED"


class ParticipantRole(str, enum.Enum):
    HOST = "HOST"
    INTERVIEWER = "INTERVIEWER"
    CANDIDATE = "CANDIDATE"
    OBSERVER = "OBSERVER"


class RealtimeSession(Base):
    """A live video room and its presence state."""

    __tablename__ = "realtime_sessions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    match_id: Mapped[str | None] = mapped_column(
        ForeignKey("interview_matches.id", ondelete="SET NULL"), nullable=True, index=True)
    host_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(32), default=RealtimeSessionStatus.SCHEDULED.value, nullable=False, index=True
    )  # SCHEDULED, ACTIVE, ENDED, CANCELLED

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False)
    ended_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True)
    last_heartbeat: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True)
    # "metadata" is reserved on declarative classes
    session_metadata: Mapped[dict] = mapped_column(
        "metadata", JSON, default=dict, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<RealtimeSession(id={self.id}, host_id={self.host_id}, status={self.status})>"


class SessionParticipant(Base):
    """Attendance record; ``left_at`` is set on leave instead of deleting the row."""

    __tablename__ = "session_participants"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    session_id: Mapped[str] = mapped_column(
        ForeignKey("realtime_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    role: Mapped[str] = mapped_column(
        String(32), default=ParticipantRole.OBSERVER.value, nullable=False)

    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False)
    last_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False)
    left_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True)
    connection_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    participant_metadata: Mapped[dict] = mapped_column(
        "metadata", JSON, default=dict, nullable=False)

    def __repr__(self) -> str:
        return f"<SessionParticipant(id={self.id}, session_id={self.session_id}, left_at={self.left_at})>"
