"""Service dependencies for API endpoints."""

from mockmatch.services.availability_service import AvailabilityService
from mockmatch.services.livekit_service import LiveKitService
from mockmatch.services.matching_service import MatchingService
from mockmatch.services.presence_service import PresenceService


def get_matching_service() -> MatchingService:
    return MatchingService(room_service=LiveKitService.from_settings())


def get_availability_service() -> AvailabilityService:
    return AvailabilityService()


def get_presence_service() -> PresenceService:
    return PresenceService()
