"""Database models."""

from mockmatch.models.profile import CandidateProfile, InterviewerProfile
from mockmatch.models.availability import AvailabilitySlot
from mockmatch.models.matching import InterviewMatch, InterviewSummary, MatchRequest
from mockmatch.models.realtime import RealtimeSession, SessionParticipant

__all__ = [
    "CandidateProfile",
    "InterviewerProfile",
    "AvailabilitySlot",
    "MatchRequest",
    "InterviewMatch",
    "InterviewSummary",
    "RealtimeSession",
    "SessionParticipant",
]
