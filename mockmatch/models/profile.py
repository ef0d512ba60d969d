"""Candidate and interviewer profile models."""

import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, Integer, Float, JSON
from sqlalchemy.orm import Mapped, mapped_column

from mockmatch.core.database import Base
from mockmatch.core.timeutils import utcnow


class CandidateProfile(Base):
    """Candidate reference data supplied by the profile service."""

    __tablename__ = "candidate_profiles"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), default="UTC", nullable=False)
    experience_years: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    preferred_roles: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    preferred_languages: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    focus_areas: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<CandidateProfile(id={self.id}, display_name={self.display_name})>"


class InterviewerProfile(Base):
    """Interviewer reference data; read-mostly."""

    __tablename__ = "interviewer_profiles"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    display_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    timezone: Mapped[str] = mapped_column(String(64), default="UTC", nullable=False)
    experience_years: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    languages: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    specializations: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    rating: Mapped[float] = mapped_column(Float, default=0.0, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<InterviewerProfile(id={self.id}, display_name={self.display_name}, rating={self.rating})>"
