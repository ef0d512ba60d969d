"""Realtime session lifecycle and participant presence.

Session status moves through explicit, guarded transitions:

    SCHEDULED -> ACTIVE | ENDED | CANCELLED
    ACTIVE    -> ENDED | CANCELLED

ENDED and CANCELLED are terminal. The first participant to join a
SCHEDULED session activates it. Every committed change is published on the
realtime bus as a ``SessionBroadcastEvent`` carrying a fresh snapshot.
"""

import copy
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from mockmatch.core.config import settings
from mockmatch.core.exceptions import NotFoundError, ValidationError
from mockmatch.core.timeutils import as_utc, utcnow
from mockmatch.models import RealtimeSession, SessionParticipant
from mockmatch.models.realtime import RealtimeSessionStatus
from mockmatch.schemas.events import SessionAction, SessionBroadcastEvent
from mockmatch.schemas.realtime import (
    RealtimeSessionCreate,
    RealtimeSessionSnapshot,
    SessionHeartbeat,
    SessionJoin,
    SessionListQuery,
    SessionParticipantSnapshot,
    SessionStatusUpdate,
)
from mockmatch.services.mappers import participant_to_snapshot, session_to_snapshot
from mockmatch.services.realtime.bus import RealtimeBus, realtime_bus
from mockmatch.services.session_store import NON_TERMINAL_STATUSES, SessionStore

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    RealtimeSessionStatus.SCHEDULED.value: frozenset({
        RealtimeSessionStatus.ACTIVE.value,
        RealtimeSessionStatus.ENDED.value,
        RealtimeSessionStatus.CANCELLED.value,
    }),
    RealtimeSessionStatus.ACTIVE.value: frozenset({
        RealtimeSessionStatus.ENDED.value,
        RealtimeSessionStatus.CANCELLED.value,
    }),
    RealtimeSessionStatus.ENDED.value: frozenset(),
    RealtimeSessionStatus.CANCELLED.value: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    """Staying in the current status is always allowed."""
    return current == target or target in ALLOWED_TRANSITIONS.get(current, frozenset())


def transition(session: RealtimeSession, target: str) -> bool:
    """
    Move a session to ``target``.

    Returns:
        True when the status changed

    Raises:
        ValidationError: The transition is not allowed
    """
    if not can_transition(session.status, target):
        raise ValidationError(
            f"Cannot move session from {session.status} to {target}",
            field="status",
            details={"session_id": session.id},
        )
    if session.status == target:
        return False
    session.status = target
    return True


class PresenceService:
    """Join/leave/heartbeat handling and status changes for realtime sessions."""

    def __init__(self, bus: Optional[RealtimeBus] = None, store: Optional[SessionStore] = None):
        self.bus = bus or realtime_bus
        self.store = store or SessionStore()

    async def _snapshot(self, db: AsyncSession, session: RealtimeSession) -> RealtimeSessionSnapshot:
        participants = await self.store.list_participants(db, session.id)
        return session_to_snapshot(session, list(participants))

    async def _require_session(self, db: AsyncSession, session_id: str) -> RealtimeSession:
        session = await self.store.get_session(db, session_id)
        if not session:
            raise NotFoundError("Session", session_id)
        return session

    def _emit(
        self,
        action: SessionAction,
        session: RealtimeSessionSnapshot,
        participant: Optional[SessionParticipantSnapshot] = None,
    ) -> None:
        self.bus.emit_session_update(
            SessionBroadcastEvent(action=action, session=session, participant=participant))

    @staticmethod
    def _recently_alive(session: RealtimeSession, now: datetime) -> bool:
        if session.status == RealtimeSessionStatus.ACTIVE.value:
            return True
        if session.status not in NON_TERMINAL_STATUSES or session.last_heartbeat is None:
            return False
        grace = timedelta(seconds=settings.HEARTBEAT_GRACE_SECONDS)
        return now - as_utc(session.last_heartbeat) <= grace

    async def create_realtime_session(
        self,
        db: AsyncSession,
        payload: RealtimeSessionCreate,
    ) -> RealtimeSessionSnapshot:
        """Open a SCHEDULED session for a host."""
        now = utcnow()
        session = RealtimeSession(
            host_id=payload.host_id,
            match_id=payload.match_id,
            status=RealtimeSessionStatus.SCHEDULED.value,
            started_at=now,
            session_metadata=copy.deepcopy(payload.metadata or {}),
            created_at=now,
            updated_at=now,
        )
        try:
            await self.store.add_session(db, session)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        snapshot = session_to_snapshot(session, [])
        logger.info(f"Created realtime session {session.id} for host {payload.host_id}")
        self._emit("created", snapshot)
        return snapshot

    async def join_realtime_session(
        self,
        db: AsyncSession,
        session_id: str,
        payload: SessionJoin,
    ) -> SessionParticipantSnapshot:
        """
        Add a present participant; activates a SCHEDULED session.

        Raises:
            NotFoundError: Session does not exist
            ValidationError: Session already ended or was cancelled
        """
        session = await self._require_session(db, session_id)
        if session.status not in NON_TERMINAL_STATUSES:
            raise ValidationError(
                f"Cannot join a session in status {session.status}",
                field="status",
                details={"session_id": session_id},
            )

        now = utcnow()
        participant = SessionParticipant(
            session_id=session_id,
            user_id=payload.user_id,
            role=payload.role.value,
            joined_at=now,
            last_seen_at=now,
            left_at=None,
            connection_id=payload.connection_id,
            participant_metadata=copy.deepcopy(payload.metadata or {}),
        )

        try:
            await self.store.add_participant(db, participant)
            session.last_heartbeat = now
            activated = False
            if session.status == RealtimeSessionStatus.SCHEDULED.value:
                activated = transition(session, RealtimeSessionStatus.ACTIVE.value)
            session.updated_at = now
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if activated:
            logger.info(f"Session {session_id} is now ACTIVE")
        logger.info(f"Participant {participant.id} joined session {session_id}")

        participant_snapshot = participant_to_snapshot(participant)
        self._emit("participant_joined", await self._snapshot(db, session), participant_snapshot)
        return participant_snapshot

    async def heartbeat_realtime_session(
        self,
        db: AsyncSession,
        session_id: str,
        payload: SessionHeartbeat,
    ) -> RealtimeSessionSnapshot:
        """
        Record liveness for a session and optionally one participant.

        Last write wins; timestamps are not checked for ordering. A
        participant's ``left_at`` is never touched here.

        Raises:
            NotFoundError: Session, or the given participant of it, does not exist
        """
        session = await self._require_session(db, session_id)
        timestamp = as_utc(payload.timestamp) if payload.timestamp else utcnow()

        participant = None
        if payload.participant_id:
            participant = await self.store.get_participant(db, session_id, payload.participant_id)
            if not participant:
                raise NotFoundError("Participant", payload.participant_id)

        try:
            session.last_heartbeat = timestamp
            session.updated_at = utcnow()
            if participant is not None:
                participant.last_seen_at = timestamp
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        snapshot = await self._snapshot(db, session)
        self._emit(
            "heartbeat",
            snapshot,
            participant_to_snapshot(participant) if participant is not None else None,
        )
        return snapshot

    async def leave_realtime_session(
        self,
        db: AsyncSession,
        session_id: str,
        participant_id: str,
    ) -> bool:
        """
        Mark a participant as gone; the row is kept for attendance history.

        Returns:
            True when the participant has left (including an earlier leave,
            which is a silent no-op); False for an unknown session or
            participant
        """
        session = await self.store.get_session(db, session_id)
        if not session:
            return False

        participant = await self.store.get_participant(db, session_id, participant_id)
        if not participant:
            return False

        if participant.left_at is not None:
            logger.debug(f"Participant {participant_id} already left session {session_id}")
            return True

        now = utcnow()
        try:
            participant.left_at = now
            participant.last_seen_at = now
            session.updated_at = now
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(f"Participant {participant_id} left session {session_id}")
        self._emit(
            "participant_left",
            await self._snapshot(db, session),
            participant_to_snapshot(participant),
        )
        return True

    async def update_realtime_session_status(
        self,
        db: AsyncSession,
        session_id: str,
        payload: SessionStatusUpdate,
    ) -> RealtimeSessionSnapshot:
        """
        Change a session's status and optionally replace its metadata.

        Moving to ENDED stamps ``ended_at`` (caller-supplied or now).

        Raises:
            NotFoundError: Session does not exist
            ValidationError: Transition not allowed
        """
        session = await self._require_session(db, session_id)
        target = payload.status.value
        previous = session.status
        now = utcnow()

        try:
            transition(session, target)
            if payload.ended_at is not None:
                session.ended_at = as_utc(payload.ended_at)
            elif target == RealtimeSessionStatus.ENDED.value and session.ended_at is None:
                session.ended_at = now
            if payload.metadata is not None:
                session.session_metadata = copy.deepcopy(payload.metadata)
            session.updated_at = now
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(f"Session {session_id} status {previous} -> {target}")
        snapshot = await self._snapshot(db, session)
        self._emit("status_updated", snapshot)
        return snapshot

    async def remove_realtime_session(self, db: AsyncSession, session_id: str) -> bool:
        """Hard-delete a session and its participant rows."""
        session = await self.store.get_session(db, session_id)
        if not session:
            return False

        snapshot = await self._snapshot(db, session)
        try:
            removed = await self.store.delete_session(db, session_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if removed:
            logger.info(f"Removed realtime session {session_id}")
            self._emit("deleted", snapshot)
        return removed

    async def get_realtime_session_by_id(
        self, db: AsyncSession, session_id: str
    ) -> RealtimeSessionSnapshot:
        session = await self._require_session(db, session_id)
        return await self._snapshot(db, session)

    async def list_realtime_sessions(
        self,
        db: AsyncSession,
        query: Optional[SessionListQuery] = None,
    ) -> list[RealtimeSessionSnapshot]:
        """Sessions matching the filter, newest first."""
        query = query or SessionListQuery()
        sessions = await self.store.list_sessions(
            db,
            status=query.status.value if query.status else None,
            host_id=query.host_id,
            match_id=query.match_id,
        )
        if query.active_only:
            now = utcnow()
            sessions = [s for s in sessions if self._recently_alive(s, now)]

        participants = await self.store.list_participants_for(db, [s.id for s in sessions])
        return [session_to_snapshot(s, participants[s.id]) for s in sessions]

    async def get_all_sessions_snapshot(self, db: AsyncSession) -> list[RealtimeSessionSnapshot]:
        return await self.list_realtime_sessions(db)

    async def get_active_session_count(self, db: AsyncSession) -> int:
        """ACTIVE sessions plus live ones that heartbeated within the grace window."""
        now = utcnow()
        sessions = await self.store.list_non_terminal_sessions(db)
        return sum(1 for s in sessions if self._recently_alive(s, now))

    async def get_completed_session_count(self, db: AsyncSession) -> int:
        return await self.store.count_by_status(db, RealtimeSessionStatus.ENDED.value)

    async def restore_realtime_sessions(self, db: AsyncSession) -> list[RealtimeSessionSnapshot]:
        """
        Re-announce every live session after a process restart.

        Emits one ``restored`` event per SCHEDULED or ACTIVE session with its
        snapshot exactly as stored, so in-process subscribers can rebuild
        their state without waiting for clients to reconnect.
        """
        sessions = await self.store.list_non_terminal_sessions(db)
        participants = await self.store.list_participants_for(db, [s.id for s in sessions])

        snapshots = [session_to_snapshot(s, participants[s.id]) for s in sessions]
        for snapshot in snapshots:
            self._emit("restored", snapshot)

        logger.info(f"Restored {len(snapshots)} realtime sessions")
        return snapshots
