"""Tests for automatic slot selection and booking."""

from datetime import timedelta

import pytest

from mockmatch.core.timeutils import utcnow
from mockmatch.models.matching import MatchStatus, SessionFormat
from mockmatch.schemas.matching import (
    AvailabilityWindow,
    InterviewerSummary,
    MatchingScore,
    MatchPreview,
    MatchRequestCreate,
)
from mockmatch.services.availability_service import AvailabilityService
from mockmatch.services.matching_automation import MatchingAutomation, select_best_slot
from mockmatch.services.matching_service import MatchingService


def preview(name: str, percentage: int, starts) -> MatchPreview:
    return MatchPreview(
        interviewer=InterviewerSummary(
            id=f"int-{name}",
            display_name=name,
            timezone="UTC",
            experience_years=5,
            languages=["English"],
            specializations=[],
            rating=4.0,
        ),
        score=MatchingScore(percentage=percentage, meets_threshold=percentage >= 70),
        availability=[
            AvailabilityWindow(
                id=f"{name}-{i}",
                start=start.isoformat(),
                end=(start + timedelta(hours=1)).isoformat(),
            )
            for i, start in enumerate(starts)
        ],
    )


def test_select_prefers_threshold_then_score_then_earliest(future_hour):
    soon = future_hour
    later = future_hour + timedelta(days=1)
    previews = [
        preview("low", 40, [soon]),
        preview("good", 75, [later, soon]),
        preview("best", 90, [later]),
    ]

    best = select_best_slot(previews)

    assert best.availability_id == "best-0"
    assert best.score == 90

    best = select_best_slot(previews[:2])
    assert best.availability_id == "good-1"


def test_select_falls_back_below_threshold(future_hour):
    best = select_best_slot([preview("a", 30, [future_hour]), preview("b", 50, [future_hour])])

    assert best.availability_id == "b-0"
    assert not best.meets_threshold


def test_select_skips_past_slots():
    now = utcnow()
    assert select_best_slot([preview("a", 90, [now - timedelta(hours=1)])], now=now) is None
    assert select_best_slot([]) is None


@pytest.fixture
async def seeded(db, bus, make_candidate, make_interviewer, future_hour):
    casey = await make_candidate()
    anna = await make_interviewer()
    slot = await AvailabilityService(bus=bus).create_availability(
        db, anna.id, future_hour, future_hour + timedelta(hours=1))
    return casey, anna, slot


def backend_request(candidate_id: str) -> MatchRequestCreate:
    return MatchRequestCreate(
        candidate_id=candidate_id,
        target_role="Backend Developer",
        focus_areas=["python"],
        preferred_languages=["English"],
        session_format=SessionFormat.MIXED,
    )


async def status_of(session_factory, bus, request_id: str) -> str:
    async with session_factory() as check:
        request = await MatchingService(bus=bus).get_match_request(check, request_id)
    return request.status


async def test_process_request_books_the_best_slot(db, bus, session_factory, seeded):
    casey, anna, slot = seeded
    request = await MatchingService(bus=bus).create_match_request(db, backend_request(casey.id))
    automation = MatchingAutomation(session_factory, bus=bus)

    scheduled = await automation.process_request(request.id)

    assert scheduled.status == MatchStatus.SCHEDULED.value
    assert scheduled.result.interviewer.id == anna.id
    assert scheduled.result.scheduled_at == slot.start
    assert await automation.process_request(request.id) is None


async def test_process_request_without_slots_leaves_request_queued(
    db, bus, session_factory, make_candidate, make_interviewer
):
    casey = await make_candidate()
    await make_interviewer()
    request = await MatchingService(bus=bus).create_match_request(db, backend_request(casey.id))
    automation = MatchingAutomation(session_factory, bus=bus)

    assert await automation.process_request(request.id) is None
    assert await automation.process_request("missing") is None
    assert await status_of(session_factory, bus, request.id) == MatchStatus.QUEUED.value


async def test_new_requests_are_scheduled_from_bus_events(db, bus, session_factory, seeded):
    casey, _, _ = seeded
    automation = MatchingAutomation(session_factory, bus=bus)
    await automation.start()

    request = await MatchingService(bus=bus).create_match_request(db, backend_request(casey.id))
    await automation._worker

    assert await status_of(session_factory, bus, request.id) == MatchStatus.SCHEDULED.value
    await automation.stop()


async def test_start_picks_up_queued_backlog(db, bus, session_factory, seeded):
    casey, _, _ = seeded
    request = await MatchingService(bus=bus).create_match_request(db, backend_request(casey.id))
    automation = MatchingAutomation(session_factory, bus=bus)

    await automation.start()
    await automation._worker

    assert await status_of(session_factory, bus, request.id) == MatchStatus.SCHEDULED.value
    await automation.stop()
