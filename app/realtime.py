"""
Realtime event relay over WebSockets.

Clients connect to ``/ws?token=<jwt>``. The token is optional: an
authenticated, active user is placed in the ``role:<ROLE>`` and
``user:<id>`` rooms, anonymous sockets only receive broadcasts and the
rooms they join explicitly.

Client → server messages:
    {"event": "join:kitchen"}   join the kitchen display room
    {"event": "join:pos"}       join the point-of-sale room
    {"event": "ping"}           answered with {"event": "pong"}

Server → client messages:
    {"event": "<name>", "data": {...}}
"""

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from app.core.exceptions import UnauthorizedError
from app.database import async_session_maker
from app.dependencies import resolve_token_user
from app.models import User

logger = logging.getLogger(__name__)

KITCHEN_ROOM = "kitchen"
POS_ROOM = "pos"

JOINABLE_ROOMS = {
    "join:kitchen": KITCHEN_ROOM,
    "join:pos": POS_ROOM,
}


def role_room(role: str) -> str:
    return f"role:{role}"


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


class ConnectionManager:
    """Tracks open sockets and the rooms each one belongs to."""

    def __init__(self) -> None:
        self._connections: dict[WebSocket, set[str]] = {}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket, user: Optional[User] = None) -> None:
        await websocket.accept()
        rooms: set[str] = set()
        if user is not None:
            rooms.update({role_room(user.role.value), user_room(user.id)})
        self._connections[websocket] = rooms
        logger.info(
            f"Socket connected ({user.id if user else 'anonymous'}), "
            f"{self.connection_count} open"
        )

    def disconnect(self, websocket: WebSocket) -> None:
        self._connections.pop(websocket, None)

    def join(self, websocket: WebSocket, room: str) -> None:
        if websocket in self._connections:
            self._connections[websocket].add(room)

    def rooms_of(self, websocket: WebSocket) -> set[str]:
        return set(self._connections.get(websocket, ()))

    async def emit(self, event: str, data: Any, *rooms: str) -> int:
        """
        Send an event to every socket in any of ``rooms``.

        With no rooms the event goes to everyone. A socket in several
        target rooms receives the event once.

        Returns:
            Number of sockets the event was delivered to
        """
        targets = set(rooms)
        message = {"event": event, "data": data}
        delivered = 0

        for websocket, joined in list(self._connections.items()):
            if targets and not (joined & targets):
                continue
            try:
                await websocket.send_json(message)
                delivered += 1
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.debug(f"Dropping dead socket: {e}")
                self.disconnect(websocket)

        logger.debug(f"Emitted {event} to {delivered} socket(s) {sorted(targets) or 'all'}")
        return delivered


manager = ConnectionManager()

router = APIRouter()


async def _socket_user(token: Optional[str]) -> Optional[User]:
    if not token:
        return None
    async with async_session_maker() as db:
        try:
            return await resolve_token_user(db, token)
        except UnauthorizedError as e:
            logger.debug(f"Socket auth rejected, continuing anonymous: {e.message}")
            return None


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: Optional[str] = Query(None)):
    user = await _socket_user(token)
    await manager.connect(websocket, user)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                continue
            if not isinstance(message, dict):
                continue

            event = message.get("event")
            if event in JOINABLE_ROOMS:
                room = JOINABLE_ROOMS[event]
                manager.join(websocket, room)
                await websocket.send_json({"event": "joined", "data": {"room": room}})
            elif event == "ping":
                await websocket.send_json({"event": "pong", "data": {}})
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket)
        logger.info(f"Socket disconnected, {manager.connection_count} open")
