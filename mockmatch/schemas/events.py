"""Events carried by the in-process realtime bus."""

from typing import Literal, Optional
from pydantic import BaseModel

from mockmatch.schemas.matching import AvailabilitySlotResponse
from mockmatch.schemas.realtime import RealtimeSessionSnapshot, SessionParticipantSnapshot

SessionAction = Literal[
    "created",
    "participant_joined",
    "participant_left",
    "heartbeat",
    "status_updated",
    "restored",
    "deleted",
]


class SessionBroadcastEvent(BaseModel):
    action: SessionAction
    session: RealtimeSessionSnapshot
    participant: Optional[SessionParticipantSnapshot] = None


class SlotUpdateEvent(BaseModel):
    action: Literal["created", "deleted"]
    slot: AvailabilitySlotResponse


class MatchRequestCreatedEvent(BaseModel):
    request_id: str
