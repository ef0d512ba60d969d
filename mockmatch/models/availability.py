"""Interviewer availability slot model."""

import uuid
from datetime import datetime
from sqlalchemy import String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from mockmatch.core.database import Base
from mockmatch.core.timeutils import utcnow


class AvailabilitySlot(Base):
    """A bookable interval; deleted the moment it is scheduled."""

    __tablename__ = "availability_slots"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    interviewer_id: Mapped[str] = mapped_column(
        ForeignKey("interviewer_profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<AvailabilitySlot(id={self.id}, interviewer_id={self.interviewer_id}, start={self.start})>"
