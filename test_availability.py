"""Tests for interviewer availability slots."""

import asyncio
from datetime import datetime, timedelta

import pytest

from mockmatch.core.exceptions import ConflictError, NotFoundError, ValidationError
from mockmatch.models import InterviewerProfile
from mockmatch.services.availability_service import AvailabilityService


@pytest.fixture
def service(bus):
    return AvailabilityService(bus=bus)


async def test_slots_are_listed_by_start(db, service, make_interviewer, future_hour):
    anna = await make_interviewer()
    later = await service.create_availability(
        db, anna.id, future_hour + timedelta(hours=3), future_hour + timedelta(hours=4))
    earlier = await service.create_availability(
        db, anna.id, future_hour, future_hour + timedelta(hours=1), is_recurring=True)

    slots = await service.list_availability(db, anna.id)

    assert [s.id for s in slots] == [earlier.id, later.id]
    assert slots[0].start == future_hour.isoformat()
    assert slots[0].is_recurring is True
    assert slots[1].is_recurring is False


async def test_end_must_be_after_start(db, service, make_interviewer, future_hour):
    anna = await make_interviewer()

    with pytest.raises(ValidationError):
        await service.create_availability(db, anna.id, future_hour, future_hour)
    with pytest.raises(ValidationError):
        await service.create_availability(
            db, anna.id, future_hour, future_hour - timedelta(minutes=30))

    assert await service.list_availability(db, anna.id) == []


async def test_naive_bounds_are_rejected(db, service, make_interviewer):
    anna = await make_interviewer()

    with pytest.raises(ValidationError):
        await service.create_availability(
            db, anna.id, datetime(2030, 1, 1, 10), datetime(2030, 1, 1, 11))


async def test_overlapping_slot_is_rejected_and_nothing_is_inserted(
    db, service, make_interviewer, future_hour
):
    anna_id = (await make_interviewer()).id
    existing = await service.create_availability(
        db, anna_id, future_hour, future_hour + timedelta(hours=1))

    overlapping = [
        (future_hour - timedelta(minutes=30), future_hour + timedelta(minutes=30)),
        (future_hour + timedelta(minutes=15), future_hour + timedelta(minutes=45)),
        (future_hour + timedelta(minutes=59), future_hour + timedelta(hours=2)),
        (future_hour - timedelta(hours=1), future_hour + timedelta(hours=2)),
    ]
    for start, end in overlapping:
        with pytest.raises(ConflictError) as exc_info:
            await service.create_availability(db, anna_id, start, end)
        assert exc_info.value.details["conflicting_slot_id"] == existing.id

    assert len(await service.list_availability(db, anna_id)) == 1


async def test_concurrent_overlapping_creates_admit_one_slot(bus, file_session_factory, future_hour):
    async with file_session_factory() as seed:
        anna = InterviewerProfile(
            display_name="Anna", timezone="Europe/Berlin", experience_years=8,
            languages=["English"], specializations=["python"], rating=4.8)
        seed.add(anna)
        await seed.commit()
        anna_id = anna.id

    service = AvailabilityService(bus=bus)

    async def create(offset_minutes: int):
        start = future_hour + timedelta(minutes=offset_minutes)
        async with file_session_factory() as session:
            return await service.create_availability(
                session, anna_id, start, start + timedelta(hours=1))

    results = await asyncio.gather(create(0), create(30), return_exceptions=True)

    assert sorted(type(r).__name__ for r in results) == ["AvailabilitySlotResponse", "ConflictError"]
    async with file_session_factory() as check:
        assert len(await service.list_availability(check, anna_id)) == 1


async def test_adjacent_slots_do_not_overlap(db, service, make_interviewer, future_hour):
    anna = await make_interviewer()
    await service.create_availability(db, anna.id, future_hour, future_hour + timedelta(hours=1))
    await service.create_availability(
        db, anna.id, future_hour + timedelta(hours=1), future_hour + timedelta(hours=2))
    await service.create_availability(
        db, anna.id, future_hour - timedelta(hours=1), future_hour)

    assert len(await service.list_availability(db, anna.id)) == 3


async def test_overlap_is_checked_per_interviewer(db, service, make_interviewer, future_hour):
    anna = await make_interviewer()
    boris = await make_interviewer(display_name="Boris")

    await service.create_availability(db, anna.id, future_hour, future_hour + timedelta(hours=1))
    await service.create_availability(db, boris.id, future_hour, future_hour + timedelta(hours=1))

    assert len(await service.list_availability(db, anna.id)) == 1
    assert len(await service.list_availability(db, boris.id)) == 1


async def test_unknown_interviewer(db, service, future_hour):
    with pytest.raises(NotFoundError):
        await service.create_availability(
            db, "missing", future_hour, future_hour + timedelta(hours=1))


async def test_delete_availability(db, service, make_interviewer, future_hour):
    anna = await make_interviewer()
    slot = await service.create_availability(
        db, anna.id, future_hour, future_hour + timedelta(hours=1))

    assert await service.delete_availability(db, slot.id) is True
    assert await service.delete_availability(db, slot.id) is False
    assert await service.list_availability(db, anna.id) == []


async def test_slot_changes_are_broadcast(db, service, make_interviewer, future_hour, events):
    anna = await make_interviewer()
    slot = await service.create_availability(
        db, anna.id, future_hour, future_hour + timedelta(hours=1))
    await service.delete_availability(db, slot.id)

    assert [(e.action, e.slot.id) for e in events.slots] == [
        ("created", slot.id),
        ("deleted", slot.id),
    ]
