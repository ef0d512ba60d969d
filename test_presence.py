"""Tests for realtime session lifecycle and presence."""

from datetime import timedelta

import pytest

from mockmatch.core.exceptions import NotFoundError, ValidationError
from mockmatch.core.timeutils import utcnow
from mockmatch.models.realtime import ParticipantRole, RealtimeSessionStatus
from mockmatch.schemas.realtime import (
    RealtimeSessionCreate,
    SessionHeartbeat,
    SessionJoin,
    SessionListQuery,
    SessionStatusUpdate,
)
from mockmatch.services.presence_service import PresenceService, can_transition

SCHEDULED = RealtimeSessionStatus.SCHEDULED
ACTIVE = RealtimeSessionStatus.ACTIVE
ENDED = RealtimeSessionStatus.ENDED
CANCELLED = RealtimeSessionStatus.CANCELLED


@pytest.fixture
def presence(bus):
    return PresenceService(bus=bus)


async def open_session(db, presence, host_id="host-1", **kwargs):
    return await presence.create_realtime_session(
        db, RealtimeSessionCreate(host_id=host_id, **kwargs))


async def test_create_session(db, presence, events):
    session = await open_session(db, presence, match_id="match-1", metadata={"topic": "sql"})

    assert session.status == SCHEDULED
    assert session.host_id == "host-1"
    assert session.match_id == "match-1"
    assert session.metadata == {"topic": "sql"}
    assert session.participants == []
    assert session.ended_at is None
    assert events.session_actions() == ["created"]
    assert events.sessions[0].session == session


async def test_first_join_activates_the_session(db, presence, events):
    session = await open_session(db, presence)

    first = await presence.join_realtime_session(
        db, session.id, SessionJoin(user_id="u1", role=ParticipantRole.INTERVIEWER))
    second = await presence.join_realtime_session(
        db, session.id, SessionJoin(user_id="u2", role=ParticipantRole.CANDIDATE))

    assert first.left_at is None
    assert first.role == ParticipantRole.INTERVIEWER
    current = await presence.get_realtime_session_by_id(db, session.id)
    assert current.status == ACTIVE
    assert current.last_heartbeat is not None
    assert [p.id for p in current.participants] == [first.id, second.id]

    assert events.session_actions() == ["created", "participant_joined", "participant_joined"]
    assert events.sessions[1].session.status == ACTIVE
    assert events.sessions[1].participant.id == first.id
    assert len(events.sessions[2].session.participants) == 2


async def test_join_defaults_to_observer(db, presence):
    session = await open_session(db, presence)

    participant = await presence.join_realtime_session(db, session.id, SessionJoin())

    assert participant.role == ParticipantRole.OBSERVER


async def test_join_unknown_session(db, presence):
    with pytest.raises(NotFoundError):
        await presence.join_realtime_session(db, "missing", SessionJoin())


@pytest.mark.parametrize("terminal", [ENDED, CANCELLED])
async def test_join_terminal_session(db, presence, terminal):
    session = await open_session(db, presence)
    await presence.update_realtime_session_status(
        db, session.id, SessionStatusUpdate(status=terminal))

    with pytest.raises(ValidationError):
        await presence.join_realtime_session(db, session.id, SessionJoin())

    current = await presence.get_realtime_session_by_id(db, session.id)
    assert current.participants == []


async def test_heartbeat_updates_liveness_only(db, presence, events):
    session = await open_session(db, presence)
    participant = await presence.join_realtime_session(db, session.id, SessionJoin(user_id="u1"))
    await presence.leave_realtime_session(db, session.id, participant.id)
    beat_at = utcnow() + timedelta(seconds=5)

    snapshot = await presence.heartbeat_realtime_session(
        db, session.id, SessionHeartbeat(participant_id=participant.id, timestamp=beat_at))

    assert snapshot.status == ACTIVE
    assert snapshot.last_heartbeat == beat_at.isoformat()
    [row] = snapshot.participants
    assert row.last_seen_at == beat_at.isoformat()
    assert row.left_at is not None
    assert events.session_actions()[-1] == "heartbeat"
    assert events.sessions[-1].participant.id == participant.id


async def test_heartbeat_without_participant(db, presence):
    session = await open_session(db, presence)

    snapshot = await presence.heartbeat_realtime_session(db, session.id, SessionHeartbeat())

    assert snapshot.status == SCHEDULED
    assert snapshot.last_heartbeat is not None


async def test_heartbeat_unknown_session_or_participant(db, presence):
    session = await open_session(db, presence)

    with pytest.raises(NotFoundError):
        await presence.heartbeat_realtime_session(db, "missing", SessionHeartbeat())
    with pytest.raises(NotFoundError):
        await presence.heartbeat_realtime_session(
            db, session.id, SessionHeartbeat(participant_id="ghost"))


async def test_leave_keeps_the_participant_row(db, presence, events):
    session = await open_session(db, presence)
    participant = await presence.join_realtime_session(db, session.id, SessionJoin(user_id="u1"))

    assert await presence.leave_realtime_session(db, session.id, participant.id) is True
    assert await presence.leave_realtime_session(db, session.id, participant.id) is True

    current = await presence.get_realtime_session_by_id(db, session.id)
    [row] = current.participants
    assert row.id == participant.id
    assert row.left_at is not None
    assert current.status == ACTIVE
    assert events.session_actions().count("participant_left") == 1


async def test_leave_unknown_session_or_participant(db, presence):
    session = await open_session(db, presence)

    assert await presence.leave_realtime_session(db, "missing", "p1") is False
    assert await presence.leave_realtime_session(db, session.id, "ghost") is False


async def test_ending_a_session_stamps_ended_at(db, presence, events):
    session = await open_session(db, presence)
    await presence.join_realtime_session(db, session.id, SessionJoin())

    ended = await presence.update_realtime_session_status(
        db, session.id, SessionStatusUpdate(status=ENDED, metadata={"outcome": "done"}))

    assert ended.status == ENDED
    assert ended.ended_at is not None
    assert ended.metadata == {"outcome": "done"}
    assert events.session_actions()[-1] == "status_updated"


async def test_explicit_ended_at_is_kept(db, presence):
    session = await open_session(db, presence)
    ended_at = utcnow().replace(microsecond=0)

    ended = await presence.update_realtime_session_status(
        db, session.id, SessionStatusUpdate(status=ENDED, ended_at=ended_at))

    assert ended.ended_at == ended_at.isoformat()


async def test_illegal_transitions_are_rejected(db, presence):
    session = await open_session(db, presence)
    await presence.update_realtime_session_status(
        db, session.id, SessionStatusUpdate(status=CANCELLED))

    for target in (SCHEDULED, ACTIVE, ENDED):
        with pytest.raises(ValidationError):
            await presence.update_realtime_session_status(
                db, session.id, SessionStatusUpdate(status=target))

    current = await presence.get_realtime_session_by_id(db, session.id)
    assert current.status == CANCELLED


def test_transition_table():
    assert can_transition("SCHEDULED", "ACTIVE")
    assert can_transition("SCHEDULED", "CANCELLED")
    assert can_transition("ACTIVE", "ENDED")
    assert can_transition("ACTIVE", "ACTIVE")
    assert not can_transition("ACTIVE", "SCHEDULED")
    assert not can_transition("ENDED", "ACTIVE")
    assert not can_transition("CANCELLED", "ENDED")


async def test_status_update_unknown_session(db, presence):
    with pytest.raises(NotFoundError):
        await presence.update_realtime_session_status(
            db, "missing", SessionStatusUpdate(status=ENDED))


async def test_remove_session(db, presence, events):
    session = await open_session(db, presence)
    await presence.join_realtime_session(db, session.id, SessionJoin())

    assert await presence.remove_realtime_session(db, session.id) is True
    assert await presence.remove_realtime_session(db, session.id) is False

    with pytest.raises(NotFoundError):
        await presence.get_realtime_session_by_id(db, session.id)
    assert events.session_actions()[-1] == "deleted"
    assert events.sessions[-1].session.id == session.id


async def test_list_sessions_filters(db, presence):
    a = await open_session(db, presence, host_id="host-a", match_id="m1")
    b = await open_session(db, presence, host_id="host-b")
    c = await open_session(db, presence, host_id="host-a")
    await presence.join_realtime_session(db, b.id, SessionJoin())
    await presence.update_realtime_session_status(db, c.id, SessionStatusUpdate(status=ENDED))

    everything = await presence.list_realtime_sessions(db)
    assert [s.id for s in everything] == [c.id, b.id, a.id]
    assert [s.id for s in await presence.get_all_sessions_snapshot(db)] == [c.id, b.id, a.id]

    by_host = await presence.list_realtime_sessions(db, SessionListQuery(host_id="host-a"))
    assert {s.id for s in by_host} == {a.id, c.id}

    by_match = await presence.list_realtime_sessions(db, SessionListQuery(match_id="m1"))
    assert [s.id for s in by_match] == [a.id]

    ended = await presence.list_realtime_sessions(db, SessionListQuery(status=ENDED))
    assert [s.id for s in ended] == [c.id]

    active = await presence.list_realtime_sessions(db, SessionListQuery(active_only=True))
    assert [s.id for s in active] == [b.id]
    assert len(active[0].participants) == 1


async def test_session_counts(db, presence):
    live = await open_session(db, presence)
    beating = await open_session(db, presence)
    idle = await open_session(db, presence)
    done = await open_session(db, presence)
    await presence.join_realtime_session(db, live.id, SessionJoin())
    await presence.heartbeat_realtime_session(db, beating.id, SessionHeartbeat())
    await presence.heartbeat_realtime_session(
        db, idle.id, SessionHeartbeat(timestamp=utcnow() - timedelta(minutes=10)))
    await presence.update_realtime_session_status(db, done.id, SessionStatusUpdate(status=ENDED))

    assert await presence.get_active_session_count(db) == 2
    assert await presence.get_completed_session_count(db) == 1


async def test_restore_announces_live_sessions(db, presence, events):
    scheduled = await open_session(db, presence, metadata={"room": "a"})
    active = await open_session(db, presence)
    ended = await open_session(db, presence)
    await presence.join_realtime_session(db, active.id, SessionJoin(user_id="u1"))
    await presence.update_realtime_session_status(db, ended.id, SessionStatusUpdate(status=ENDED))
    before = len(events.sessions)

    restored = await presence.restore_realtime_sessions(db)

    assert {s.id for s in restored} == {scheduled.id, active.id}
    announced = events.sessions[before:]
    assert [e.action for e in announced] == ["restored", "restored"]
    for event in announced:
        assert event.session == await presence.get_realtime_session_by_id(db, event.session.id)
