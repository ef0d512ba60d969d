"""LiveKit rooms and join tokens for scheduled interviews."""

import logging
import re
import secrets
from datetime import timedelta
from typing import Optional
from livekit import api

from mockmatch.core.config import settings

logger = logging.getLogger(__name__)

ROOM_NAME_PREFIX = "mockmatch"
ROOM_NAME_MAX_LENGTH = 120
TOKEN_TTL = timedelta(hours=2)
DEFAULT_LIVEKIT_URL = "wss://mockmatch.livekit.cloud"


def generate_room_name(request_id: str) -> str:
    """Build a unique, provider-safe room name for a match request."""
    sanitized = re.sub(r"[^a-zA-Z0-9]", "", request_id).lower()
    base = sanitized[-10:] or "session"
    return f"{ROOM_NAME_PREFIX}-{base}-{secrets.token_hex(4)}"[:ROOM_NAME_MAX_LENGTH]


class LiveKitService:
    """Provisions one LiveKit room per scheduled match and signs join tokens.

    The room name doubles as the match's ``room_id``; ``room_url`` is the
    LiveKit server every room lives on.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        url: Optional[str] = None,
    ):
        self.api_key = api_key or settings.LIVEKIT_API_KEY
        self.api_secret = api_secret or settings.LIVEKIT_API_SECRET
        if not self.api_key or not self.api_secret:
            raise ValueError("LIVEKIT_API_KEY and LIVEKIT_API_SECRET are required for rooms")
        self.url = url or settings.LIVEKIT_URL or DEFAULT_LIVEKIT_URL

    @classmethod
    def from_settings(cls) -> Optional["LiveKitService"]:
        """Return a configured service, or None when credentials are missing."""
        if not settings.LIVEKIT_API_KEY or not settings.LIVEKIT_API_SECRET:
            return None
        return cls()

    def _client(self) -> api.LiveKitAPI:
        return api.LiveKitAPI(self.url, self.api_key, self.api_secret)

    def create_access_token(
        self,
        room_name: str,
        participant_name: str,
        participant_identity: str,
        can_publish: bool = True,
        can_subscribe: bool = True,
    ) -> str:
        """
        Sign a join token for one interview room.

        Args:
            room_name: Room the token is valid for (the match's ``room_id``)
            participant_name: Name shown to the other side
            participant_identity: Stable identity, usually the user id
            can_publish: Allow sending audio/video
            can_subscribe: Allow receiving audio/video

        Returns:
            Signed JWT, valid for ``TOKEN_TTL``
        """
        grants = api.VideoGrants(
            room_join=True,
            room=room_name,
            can_publish=can_publish,
            can_subscribe=can_subscribe,
        )
        return (
            api.AccessToken(self.api_key, self.api_secret)
            .with_identity(participant_identity)
            .with_name(participant_name)
            .with_ttl(TOKEN_TTL)
            .with_grants(grants)
            .to_jwt()
        )

    async def create_room(
        self,
        room_name: str,
        empty_timeout: Optional[int] = None,
        max_participants: Optional[int] = None,
    ) -> dict:
        """
        Open an interview room.

        Returns:
            ``room_id`` (the room name), ``room_sid`` and ``room_url``
        """
        livekit_api = self._client()
        try:
            room = await livekit_api.room.create_room(api.CreateRoomRequest(
                name=room_name,
                empty_timeout=empty_timeout or settings.ROOM_EMPTY_TIMEOUT_SECONDS,
                max_participants=max_participants or settings.ROOM_MAX_PARTICIPANTS,
            ))
        finally:
            await livekit_api.aclose()

        logger.info(f"Created LiveKit room {room.name} ({room.sid})")
        return {
            "room_id": room.name,
            "room_sid": room.sid,
            "room_url": self.url,
        }

    async def delete_room(self, room_name: str) -> bool:
        """Close a room; returns False when LiveKit refuses (e.g. already gone)."""
        livekit_api = self._client()
        try:
            await livekit_api.room.delete_room(api.DeleteRoomRequest(room=room_name))
        except Exception as e:
            logger.warning(f"Could not delete LiveKit room {room_name}: {e}")
            return False
        finally:
            await livekit_api.aclose()
        logger.info(f"Deleted LiveKit room {room_name}")
        return True
