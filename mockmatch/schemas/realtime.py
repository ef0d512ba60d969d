"""Realtime session Pydantic schemas."""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field

from mockmatch.models.realtime import ParticipantRole, RealtimeSessionStatus


class SessionParticipantSnapshot(BaseModel):
    """Point-in-time copy of a participant row."""

    id: str
    session_id: str
    user_id: Optional[str] = None
    role: ParticipantRole
    joined_at: str
    last_seen_at: str
    left_at: Optional[str] = None
    connection_id: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class RealtimeSessionSnapshot(BaseModel):
    """Point-in-time copy of a session and all of its participants."""

    id: str
    match_id: Optional[str] = None
    host_id: str
    status: RealtimeSessionStatus
    started_at: str
    ended_at: Optional[str] = None
    last_heartbeat: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    participants: list[SessionParticipantSnapshot] = Field(default_factory=list)
    created_at: str
    updated_at: str


class RealtimeSessionCreate(BaseModel):
    host_id: str = Field(..., min_length=1)
    match_id: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


class SessionJoin(BaseModel):
    user_id: Optional[str] = None
    role: ParticipantRole = ParticipantRole.OBSERVER
    connection_id: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


class SessionLeave(BaseModel):
    participant_id: str = Field(..., min_length=1)


class SessionHeartbeat(BaseModel):
    participant_id: Optional[str] = None
    timestamp: Optional[datetime] = Field(
        None, description="Defaults to the server clock")


class SessionStatusUpdate(BaseModel):
    status: RealtimeSessionStatus
    ended_at: Optional[datetime] = None
    metadata: Optional[dict[str, Any]] = None


class SessionListQuery(BaseModel):
    status: Optional[RealtimeSessionStatus] = None
    host_id: Optional[str] = None
    match_id: Optional[str] = None
    active_only: bool = False
