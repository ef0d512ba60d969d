"""Interviewer availability slots with per-interviewer overlap protection."""

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from mockmatch.core.exceptions import ConflictError, NotFoundError, ValidationError
from mockmatch.core.timeutils import as_utc
from mockmatch.models import AvailabilitySlot, InterviewerProfile
from mockmatch.schemas.events import SlotUpdateEvent
from mockmatch.schemas.matching import AvailabilitySlotResponse
from mockmatch.services.mappers import slot_to_response
from mockmatch.services.realtime.bus import RealtimeBus, realtime_bus

logger = logging.getLogger(__name__)

# Creates for one interviewer run one at a time within this process
_interviewer_locks = weakref.WeakValueDictionary()


@asynccontextmanager
async def _interviewer_lock(interviewer_id: str):
    lock = _interviewer_locks.get(interviewer_id)
    if lock is None:
        lock = asyncio.Lock()
        _interviewer_locks[interviewer_id] = lock
    async with lock:
        yield


class AvailabilityService:
    """CRUD over availability slots."""

    def __init__(self, bus: Optional[RealtimeBus] = None):
        self.bus = bus or realtime_bus

    async def list_availability(
        self,
        db: AsyncSession,
        interviewer_id: str,
    ) -> list[AvailabilitySlotResponse]:
        """List an interviewer's slots ordered by start."""
        result = await db.execute(
            select(AvailabilitySlot)
            .where(AvailabilitySlot.interviewer_id == interviewer_id)
            .order_by(AvailabilitySlot.start.asc(), AvailabilitySlot.id.asc())
        )
        return [slot_to_response(slot) for slot in result.scalars().all()]

    async def create_availability(
        self,
        db: AsyncSession,
        interviewer_id: str,
        start: datetime,
        end: datetime,
        is_recurring: bool = False,
    ) -> AvailabilitySlotResponse:
        """
        Publish a new slot for an interviewer.

        Args:
            db: Database session
            interviewer_id: Owner of the slot
            start: Slot start, timezone-aware
            end: Slot end, timezone-aware; must be after ``start``
            is_recurring: Informational flag stored with the slot

        Returns:
            The created slot

        Raises:
            ValidationError: Bounds are naive or ``end <= start``
            NotFoundError: Interviewer does not exist
            ConflictError: Overlaps an existing slot of the same interviewer
        """
        if start.tzinfo is None or end.tzinfo is None:
            raise ValidationError("Slot bounds must be timezone-aware", field="start")
        if end <= start:
            raise ValidationError("Slot end must be after its start", field="end")

        start, end = as_utc(start), as_utc(end)

        async with _interviewer_lock(interviewer_id):
            # Row lock serializes writers across processes (ignored by SQLite)
            locked = await db.execute(
                select(InterviewerProfile.id)
                .where(InterviewerProfile.id == interviewer_id)
                .with_for_update()
            )
            if locked.scalar_one_or_none() is None:
                raise NotFoundError("Interviewer", interviewer_id)

            result = await db.execute(
                select(AvailabilitySlot.id).where(
                    AvailabilitySlot.interviewer_id == interviewer_id,
                    AvailabilitySlot.start < end,
                    AvailabilitySlot.end > start,
                ).limit(1)
            )
            overlapping_id = result.scalar_one_or_none()
            if overlapping_id:
                await db.rollback()
                logger.warning(
                    f"Rejected slot {start.isoformat()}-{end.isoformat()} for interviewer "
                    f"{interviewer_id}: overlaps slot {overlapping_id}")
                raise ConflictError(
                    "Slot overlaps an existing availability slot",
                    details={"conflicting_slot_id": overlapping_id},
                )

            slot = AvailabilitySlot(
                interviewer_id=interviewer_id,
                start=start,
                end=end,
                is_recurring=is_recurring,
            )
            try:
                db.add(slot)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        response = slot_to_response(slot)
        logger.info(f"Created slot {slot.id} for interviewer {interviewer_id}")
        self.bus.emit_slot_update(SlotUpdateEvent(action="created", slot=response))
        return response

    async def delete_availability(self, db: AsyncSession, slot_id: str) -> bool:
        """Delete a slot. Returns False when it does not exist."""
        slot = await db.get(AvailabilitySlot, slot_id)
        if not slot:
            return False

        response = slot_to_response(slot)
        await db.execute(delete(AvailabilitySlot).where(AvailabilitySlot.id == slot_id))
        await db.commit()

        logger.info(f"Deleted slot {slot_id}")
        self.bus.emit_slot_update(SlotUpdateEvent(action="deleted", slot=response))
        return True
