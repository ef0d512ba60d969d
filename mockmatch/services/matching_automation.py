"""Automatic scheduling of newly queued match requests."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mockmatch.core.exceptions import NotFoundError
from mockmatch.core.timeutils import parse_timestamp, utcnow
from mockmatch.models import MatchRequest
from mockmatch.models.matching import MatchStatus
from mockmatch.schemas.events import MatchRequestCreatedEvent
from mockmatch.schemas.matching import MatchPreview, MatchRequestResponse
from mockmatch.services.matching_service import MatchingService
from mockmatch.services.realtime.bus import RealtimeBus, realtime_bus

logger = logging.getLogger(__name__)

BACKLOG_BATCH_SIZE = 25


@dataclass
class SlotCandidate:
    availability_id: str
    start: datetime
    score: int
    meets_threshold: bool


def select_best_slot(
    previews: list[MatchPreview],
    now: Optional[datetime] = None,
) -> Optional[SlotCandidate]:
    """
    Pick the slot to book from a preview list.

    Only future slots qualify. Slots of interviewers that meet the score
    threshold win over those that do not; ties break on higher score, then
    earlier start, then slot id.
    """
    now = now or utcnow()
    candidates = []
    for preview in previews:
        for window in preview.availability:
            start = parse_timestamp(window.start)
            if start <= now:
                continue
            candidates.append(SlotCandidate(
                availability_id=window.id,
                start=start,
                score=preview.score.percentage,
                meets_threshold=preview.score.meets_threshold,
            ))

    if not candidates:
        return None

    viable = [c for c in candidates if c.meets_threshold]
    pool = viable or candidates
    return min(pool, key=lambda c: (-c.score, c.start, c.availability_id))


class MatchingAutomation:
    """Books the best slot for each queued request as it arrives.

    Requests are picked up from ``match_requests`` bus events and, on
    ``start()``, from the oldest QUEUED rows in the store. There is no timer;
    a request that finds no slot simply stays QUEUED.
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        matching_service: Optional[MatchingService] = None,
        bus: Optional[RealtimeBus] = None,
    ):
        self.session_factory = session_factory
        self.bus = bus or realtime_bus
        self.matching_service = matching_service or MatchingService(bus=self.bus)
        self._queue: list[str] = []
        self._queued: set[str] = set()
        self._worker: Optional[asyncio.Task] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    async def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.bus.subscribe_to_match_requests(self._on_request_created)
        await self.populate_from_database()

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None

    def _on_request_created(self, event: MatchRequestCreatedEvent) -> None:
        self.enqueue(event.request_id)

    def enqueue(self, request_id: str) -> None:
        if not request_id or request_id in self._queued:
            return
        self._queued.add(request_id)
        self._queue.append(request_id)
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self.drain())

    async def populate_from_database(self) -> None:
        async with self.session_factory() as db:
            result = await db.execute(
                select(MatchRequest.id)
                .where(MatchRequest.status == MatchStatus.QUEUED.value)
                .order_by(MatchRequest.created_at.asc())
                .limit(BACKLOG_BATCH_SIZE)
            )
            request_ids = list(result.scalars().all())
        for request_id in request_ids:
            self.enqueue(request_id)

    async def drain(self) -> None:
        """Process queued request ids until the queue is empty."""
        while self._queue:
            request_id = self._queue.pop(0)
            self._queued.discard(request_id)
            try:
                await self.process_request(request_id)
            except Exception as e:
                logger.error(f"Automatic scheduling of {request_id} failed: {e}", exc_info=True)

    async def process_request(self, request_id: str) -> Optional[MatchRequestResponse]:
        """
        Try to book one request.

        Returns:
            The scheduled request, or None when it was not schedulable
        """
        async with self.session_factory() as db:
            try:
                request = await self.matching_service.get_match_request(db, request_id)
            except NotFoundError:
                logger.warning(f"Queued request {request_id} disappeared before scheduling")
                return None
            if request.status != MatchStatus.QUEUED.value:
                return None

            previews = await self.matching_service.get_match_previews(db, request_id)
            best = select_best_slot(previews)
            if best is None:
                logger.info(f"No upcoming slot for request {request_id}; leaving it queued")
                return None

            try:
                scheduled = await self.matching_service.schedule_match(
                    db, request_id, best.availability_id)
            except NotFoundError as e:
                # Lost the slot to a concurrent booking; the request stays QUEUED
                logger.warning(f"Could not book slot {best.availability_id} for {request_id}: {e}")
                return None

            logger.info(
                f"Automatically scheduled request {request_id} on slot {best.availability_id} "
                f"(score {best.score})")
            return scheduled
