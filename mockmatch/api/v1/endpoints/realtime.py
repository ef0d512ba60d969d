"""Websocket fan-out of realtime bus events."""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from mockmatch.core.database import AsyncSessionLocal
from mockmatch.models.realtime import RealtimeSessionStatus
from mockmatch.schemas.events import SessionBroadcastEvent, SlotUpdateEvent
from mockmatch.schemas.realtime import RealtimeSessionSnapshot
from mockmatch.services.availability_service import AvailabilityService
from mockmatch.services.realtime.bus import RealtimeBus, realtime_bus

logger = logging.getLogger(__name__)
router = APIRouter()

TERMINAL_STATUSES = {RealtimeSessionStatus.ENDED, RealtimeSessionStatus.CANCELLED}


class SessionStateCache:
    """Latest snapshot of every live session, rebuilt from bus events.

    Subscribed before sessions are restored at startup, so after a restart it
    is repopulated from ``restored`` events rather than from reconnecting
    clients.
    """

    def __init__(self):
        self._sessions: dict[str, RealtimeSessionSnapshot] = {}
        self._unsubscribe = None

    def attach(self, bus: RealtimeBus) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = bus.subscribe_to_session_updates(self.apply)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def apply(self, event: SessionBroadcastEvent) -> None:
        session = event.session
        if event.action == "deleted" or session.status in TERMINAL_STATUSES:
            self._sessions.pop(session.id, None)
        else:
            self._sessions[session.id] = session

    def get(self, session_id: str) -> Optional[RealtimeSessionSnapshot]:
        snapshot = self._sessions.get(session_id)
        return snapshot.model_copy(deep=True) if snapshot else None

    def snapshot(self, host_id: Optional[str] = None) -> list[RealtimeSessionSnapshot]:
        return [
            s.model_copy(deep=True)
            for s in self._sessions.values()
            if host_id is None or s.host_id == host_id
        ]

    def clear(self) -> None:
        self._sessions.clear()


session_state_cache = SessionStateCache()


async def _pump(websocket: WebSocket, queue: asyncio.Queue) -> None:
    """Forward queued messages until the client disconnects."""
    receiver = asyncio.create_task(_wait_for_disconnect(websocket))
    try:
        while True:
            getter = asyncio.create_task(queue.get())
            done, _ = await asyncio.wait(
                {getter, receiver}, return_when=asyncio.FIRST_COMPLETED)
            if receiver in done:
                getter.cancel()
                return
            await websocket.send_json(getter.result())
    finally:
        receiver.cancel()


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        return


@router.websocket("/sessions")
async def sessions_socket(websocket: WebSocket, host_id: Optional[str] = Query(None)):
    """Stream session changes, optionally for one host."""
    await websocket.accept()
    queue: asyncio.Queue = asyncio.Queue()

    def on_event(event: SessionBroadcastEvent) -> None:
        if host_id and event.session.host_id != host_id:
            return
        queue.put_nowait({"type": "sessions:update", "data": event.model_dump(mode="json")})

    unsubscribe = realtime_bus.subscribe_to_session_updates(on_event)
    try:
        await websocket.send_json({
            "type": "sessions:initial",
            "data": [s.model_dump(mode="json") for s in session_state_cache.snapshot(host_id)],
        })
        await _pump(websocket, queue)
    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe()


@router.websocket("/slots")
async def slots_socket(websocket: WebSocket, interviewer_id: Optional[str] = Query(None)):
    """Stream availability changes, optionally for one interviewer."""
    await websocket.accept()
    queue: asyncio.Queue = asyncio.Queue()

    def on_event(event: SlotUpdateEvent) -> None:
        if interviewer_id and event.slot.interviewer_id != interviewer_id:
            return
        queue.put_nowait({"type": "slots:update", "data": event.model_dump(mode="json")})

    unsubscribe = realtime_bus.subscribe_to_slot_updates(on_event)
    try:
        if interviewer_id:
            async with AsyncSessionLocal() as db:
                slots = await AvailabilityService().list_availability(db, interviewer_id)
            await websocket.send_json({
                "type": "slots:initial",
                "data": [s.model_dump(mode="json") for s in slots],
            })
        else:
            await websocket.send_json({"type": "slots:ready"})
        await _pump(websocket, queue)
    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe()
