from mockmatch.services.realtime.bus import (
    MATCH_REQUESTS_CHANNEL,
    SESSIONS_CHANNEL,
    SLOTS_CHANNEL,
    RealtimeBus,
    realtime_bus,
)

__all__ = [
    "MATCH_REQUESTS_CHANNEL",
    "SESSIONS_CHANNEL",
    "SLOTS_CHANNEL",
    "RealtimeBus",
    "realtime_bus",
]
