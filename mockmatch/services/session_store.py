"""Persistence for realtime sessions and their participants."""

from typing import Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mockmatch.models import RealtimeSession, SessionParticipant
from mockmatch.models.realtime import RealtimeSessionStatus

NON_TERMINAL_STATUSES = (
    RealtimeSessionStatus.SCHEDULED.value,
    RealtimeSessionStatus.ACTIVE.value,
)


class SessionStore:
    """Row-level access to ``realtime_sessions`` and ``session_participants``.

    Holds no business rules; the presence service decides what to write.
    Methods flush but never commit, so callers control the transaction.
    """

    async def get_session(self, db: AsyncSession, session_id: str) -> Optional[RealtimeSession]:
        return await db.get(RealtimeSession, session_id)

    async def list_sessions(
        self,
        db: AsyncSession,
        status: Optional[str] = None,
        host_id: Optional[str] = None,
        match_id: Optional[str] = None,
    ) -> Sequence[RealtimeSession]:
        query = select(RealtimeSession)
        if status:
            query = query.where(RealtimeSession.status == status)
        if host_id:
            query = query.where(RealtimeSession.host_id == host_id)
        if match_id:
            query = query.where(RealtimeSession.match_id == match_id)
        result = await db.execute(
            query.order_by(RealtimeSession.created_at.desc(), RealtimeSession.id.asc())
        )
        return result.scalars().all()

    async def list_non_terminal_sessions(self, db: AsyncSession) -> Sequence[RealtimeSession]:
        result = await db.execute(
            select(RealtimeSession)
            .where(RealtimeSession.status.in_(NON_TERMINAL_STATUSES))
            .order_by(RealtimeSession.created_at.asc(), RealtimeSession.id.asc())
        )
        return result.scalars().all()

    async def add_session(self, db: AsyncSession, session: RealtimeSession) -> RealtimeSession:
        db.add(session)
        await db.flush()
        return session

    async def add_participant(
        self, db: AsyncSession, participant: SessionParticipant
    ) -> SessionParticipant:
        db.add(participant)
        await db.flush()
        return participant

    async def get_participant(
        self, db: AsyncSession, session_id: str, participant_id: str
    ) -> Optional[SessionParticipant]:
        result = await db.execute(
            select(SessionParticipant).where(
                SessionParticipant.id == participant_id,
                SessionParticipant.session_id == session_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_participants(
        self, db: AsyncSession, session_id: str
    ) -> Sequence[SessionParticipant]:
        result = await db.execute(
            select(SessionParticipant)
            .where(SessionParticipant.session_id == session_id)
            .order_by(SessionParticipant.joined_at.asc(), SessionParticipant.id.asc())
        )
        return result.scalars().all()

    async def list_participants_for(
        self, db: AsyncSession, session_ids: Sequence[str]
    ) -> dict[str, list[SessionParticipant]]:
        """Participants of many sessions in one query, keyed by session id."""
        grouped: dict[str, list[SessionParticipant]] = {sid: [] for sid in session_ids}
        if not session_ids:
            return grouped
        result = await db.execute(
            select(SessionParticipant)
            .where(SessionParticipant.session_id.in_(session_ids))
            .order_by(SessionParticipant.joined_at.asc(), SessionParticipant.id.asc())
        )
        for participant in result.scalars().all():
            grouped[participant.session_id].append(participant)
        return grouped

    async def count_by_status(self, db: AsyncSession, status: str) -> int:
        count = await db.scalar(
            select(func.count()).select_from(RealtimeSession).where(
                RealtimeSession.status == status)
        )
        return count or 0

    async def delete_session(self, db: AsyncSession, session_id: str) -> bool:
        """Hard-delete a session and all of its participant rows."""
        await db.execute(
            delete(SessionParticipant).where(SessionParticipant.session_id == session_id)
        )
        result = await db.execute(
            delete(RealtimeSession).where(RealtimeSession.id == session_id)
        )
        return result.rowcount > 0
