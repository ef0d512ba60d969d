"""Shared fixtures: in-memory SQLite database, isolated bus, profile factories."""

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from mockmatch.core.database import Base
from mockmatch.core.timeutils import utcnow
from mockmatch.models import CandidateProfile, InterviewerProfile
from mockmatch.services.realtime.bus import (
    MATCH_REQUESTS_CHANNEL,
    SESSIONS_CHANNEL,
    SLOTS_CHANNEL,
    RealtimeBus,
)


@pytest.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def file_session_factory(tmp_path):
    """Sessions on a file-backed database, each with its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'mockmatch.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def bus():
    return RealtimeBus()


class EventRecorder:
    """Collects every event published on the test bus, per channel."""

    def __init__(self, bus: RealtimeBus):
        self.sessions = []
        self.slots = []
        self.match_requests = []
        bus.subscribe(SESSIONS_CHANNEL, self.sessions.append)
        bus.subscribe(SLOTS_CHANNEL, self.slots.append)
        bus.subscribe(MATCH_REQUESTS_CHANNEL, self.match_requests.append)

    def session_actions(self) -> list[str]:
        return [event.action for event in self.sessions]


@pytest.fixture
def events(bus):
    return EventRecorder(bus)


@pytest.fixture
def future_hour():
    """Top of an hour two days from now, in UTC."""
    return (utcnow() + timedelta(days=2)).replace(minute=0, second=0, microsecond=0)


@pytest.fixture
def make_candidate(db):
    async def factory(**overrides) -> CandidateProfile:
        values = {
            "display_name": "Casey Candidate",
            "timezone": "Europe/Berlin",
            "experience_years": 3,
            "preferred_roles": ["Backend Developer"],
            "preferred_languages": ["English"],
            "focus_areas": ["python"],
        }
        values.update(overrides)
        candidate = CandidateProfile(**values)
        db.add(candidate)
        await db.commit()
        return candidate

    return factory


@pytest.fixture
def make_interviewer(db):
    async def factory(**overrides) -> InterviewerProfile:
        values = {
            "display_name": "Anna",
            "timezone": "Europe/Berlin",
            "experience_years": 8,
            "languages": ["English", "German"],
            "specializations": ["Backend Developer", "python", "postgres"],
            "rating": 4.8,
        }
        values.update(overrides)
        interviewer = InterviewerProfile(**values)
        db.add(interviewer)
        await db.commit()
        return interviewer

    return factory
