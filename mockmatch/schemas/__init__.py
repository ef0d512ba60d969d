"""Pydantic schemas for request/response validation."""

from mockmatch.schemas.matching import (
    AvailabilityCreate,
    AvailabilitySlotResponse,
    CompleteMatch,
    MatchPreview,
    MatchRequestCreate,
    MatchRequestResponse,
    MatchingScore,
    MatchingSignals,
    ScheduleMatch,
)
from mockmatch.schemas.realtime import (
    RealtimeSessionCreate,
    RealtimeSessionSnapshot,
    SessionHeartbeat,
    SessionJoin,
    SessionListQuery,
    SessionParticipantSnapshot,
    SessionStatusUpdate,
)
from mockmatch.schemas.events import (
    MatchRequestCreatedEvent,
    SessionBroadcastEvent,
    SlotUpdateEvent,
)

__all__ = [
    "AvailabilityCreate",
    "AvailabilitySlotResponse",
    "CompleteMatch",
    "MatchPreview",
    "MatchRequestCreate",
    "MatchRequestResponse",
    "MatchingScore",
    "MatchingSignals",
    "ScheduleMatch",
    "RealtimeSessionCreate",
    "RealtimeSessionSnapshot",
    "SessionHeartbeat",
    "SessionJoin",
    "SessionListQuery",
    "SessionParticipantSnapshot",
    "SessionStatusUpdate",
    "MatchRequestCreatedEvent",
    "SessionBroadcastEvent",
    "SlotUpdateEvent",
]
