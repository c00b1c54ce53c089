"""Room registry and fan-out for realtime connections."""

import logging
import uuid
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

from viewmaxx.users.models import UserProjection

logger = logging.getLogger(__name__)

Sender = Callable[[dict[str, Any]], Awaitable[None]]


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


def video_room(video_id: str) -> str:
    return f"video:{video_id}"


def live_room(video_id: str) -> str:
    return f"live:{video_id}"


class Connection:
    """One socket session. ``user`` is a snapshot taken at handshake, or None for a guest."""

    def __init__(self, send: Sender, user: UserProjection | None = None):
        self.id = uuid.uuid4().hex
        self.user = user
        self.rooms: set[str] = set()
        self._send = send

    @property
    def user_id(self) -> str | None:
        return self.user.id if self.user else None

    @property
    def is_guest(self) -> bool:
        return self.user is None

    async def emit(self, event: str, data: Any) -> None:
        await self._send({"event": event, "data": data})

    def __repr__(self) -> str:
        return f"Connection(id={self.id!r}, user_id={self.user_id!r})"


class RoomHub:
    def __init__(self):
        self._rooms: dict[str, set[Connection]] = defaultdict(set)
        self._connections: dict[str, Connection] = {}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def register(self, conn: Connection) -> None:
        self._connections[conn.id] = conn

    def unregister(self, conn: Connection) -> None:
        for room in list(conn.rooms):
            self.leave(conn, room)
        self._connections.pop(conn.id, None)

    def join(self, conn: Connection, room: str) -> None:
        self._rooms[room].add(conn)
        conn.rooms.add(room)

    def leave(self, conn: Connection, room: str) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.discard(conn)
            if not members:
                del self._rooms[room]
        conn.rooms.discard(room)

    def members(self, room: str) -> set[Connection]:
        return set(self._rooms.get(room, ()))

    async def emit(self, room: str, event: str, data: Any, *, skip: Connection | None = None) -> int:
        """Send to every member of ``room`` except ``skip``. Returns deliveries.

        A failed send is logged and does not stop delivery to the others.
        """
        delivered = 0
        # Snapshot: members may disconnect while we await sends
        for conn in self.members(room):
            if conn is skip:
                continue
            try:
                await conn.emit(event, data)
                delivered += 1
            except Exception:
                logger.warning("Failed to deliver %s to %r in %s", event, conn, room, exc_info=True)
        return delivered

    async def emit_to_user(self, user_id: str, event: str, data: Any) -> int:
        return await self.emit(user_room(user_id), event, data)
