"""Matching and scheduling Pydantic schemas."""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field

from mockmatch.models.matching import SessionFormat


class MatchingSignals(BaseModel):
    """Inputs of the matching score."""

    profession_matched: bool = False
    tech_stack_overlap: float = Field(
        0.0, description="Share of requested focus areas the interviewer covers (0..1)")
    language_matched: bool = False
    level_matched: bool = False
    timezone_matched: bool = False


class MatchingScore(BaseModel):
    percentage: int = Field(..., ge=0, le=100)
    meets_threshold: bool


class MatchRequestCreate(BaseModel):
    """Schema for creating a match request."""

    candidate_id: str = Field(..., min_length=1)
    target_role: str = Field(..., min_length=1, description="Role the candidate is preparing for")
    focus_areas: list[str] = Field(default_factory=list)
    preferred_languages: list[str] = Field(default_factory=list)
    session_format: SessionFormat
    notes: Optional[str] = None


class InterviewerSummary(BaseModel):
    id: str
    display_name: str
    timezone: str
    experience_years: int
    languages: list[str]
    specializations: list[str]
    rating: float


class CandidateSummary(BaseModel):
    id: str
    display_name: str
    timezone: str
    experience_years: int
    preferred_roles: list[str]
    preferred_languages: list[str]


class InterviewSummaryResponse(BaseModel):
    interviewer_notes: str
    candidate_notes: Optional[str] = None
    rating: int
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    ai_highlights: Optional[dict[str, Any]] = None


class MatchResult(BaseModel):
    """Schema for the booking attached to a match request."""

    id: str
    status: str
    scheduled_at: Optional[str] = None
    room_url: Optional[str] = None
    room_id: Optional[str] = None
    effectiveness_score: float
    interviewer: InterviewerSummary
    completed_at: Optional[str] = None
    summary: Optional[InterviewSummaryResponse] = None


class MatchRequestResponse(BaseModel):
    """Schema for match request response."""

    id: str
    candidate_id: str
    target_role: str
    focus_areas: list[str]
    preferred_languages: list[str]
    session_format: str
    notes: Optional[str] = None
    status: str
    matched_at: Optional[str] = None
    expires_at: Optional[str] = None
    created_at: str
    updated_at: str
    result: Optional[MatchResult] = None


class AvailabilityWindow(BaseModel):
    id: str
    start: str
    end: str


class MatchPreview(BaseModel):
    """One ranked interviewer for a request, with upcoming slots."""

    interviewer: InterviewerSummary
    score: MatchingScore
    availability: list[AvailabilityWindow] = Field(default_factory=list)


class AvailabilityCreate(BaseModel):
    """Schema for publishing an availability slot."""

    start: datetime = Field(..., description="Slot start (timezone-aware)")
    end: datetime = Field(..., description="Slot end (timezone-aware)")
    is_recurring: bool = False


class AvailabilitySlotResponse(BaseModel):
    id: str
    interviewer_id: str
    start: str
    end: str
    is_recurring: bool
    created_at: str


class ScheduleMatch(BaseModel):
    """Schema for booking a slot for a match request."""

    availability_id: str = Field(..., min_length=1)
    room_url: Optional[str] = Field(
        None, description="Pre-provisioned conferencing room; stored as-is")


class CompleteMatch(BaseModel):
    """Schema for closing out an interview."""

    effectiveness_score: float = Field(..., ge=0, le=100)
    interviewer_notes: str
    candidate_notes: Optional[str] = None
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    rating: Optional[int] = Field(None, ge=0, le=5)
    ai_highlights: Optional[dict[str, Any]] = None


class CompletedSession(BaseModel):
    id: str
    scheduled_at: Optional[str] = None
    completed_at: Optional[str] = None
    effectiveness_score: float
    candidate_id: str
    interviewer: InterviewerSummary
    summary: Optional[InterviewSummaryResponse] = None


class InterviewerSession(BaseModel):
    id: str
    status: str
    scheduled_at: Optional[str] = None
    completed_at: Optional[str] = None
    effectiveness_score: float
    candidate_id: str
    target_role: str
    focus_areas: list[str]
    preferred_languages: list[str]
    summary: Optional[InterviewSummaryResponse] = None


class MatchOverview(BaseModel):
    queued_requests: int
    scheduled_matches: int
    completed_matches: int


class MatchToken(BaseModel):
    token: str
    room_id: str
    room_url: Optional[str] = None
