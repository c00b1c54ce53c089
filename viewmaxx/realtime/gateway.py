"""Realtime gateway: socket handshake auth and room-scoped client events.

Client frames look like ``{"event": "<name>", "data": {...}}``. Handlers
report problems back to the sender as an ``error`` event instead of raising,
so one bad frame never tears down the connection.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from viewmaxx.auth.dependencies import authenticate_token
from viewmaxx.auth.errors import AccountRestricted, InvalidToken, TokenExpired, UserNotFound
from viewmaxx.realtime.hub import Connection, RoomHub, live_room, user_room, video_room
from viewmaxx.services import Services
from viewmaxx.users.models import UserProjection

logger = logging.getLogger(__name__)

AUTH_REQUIRED = "required"
AUTH_OPTIONAL = "optional"


@dataclass(frozen=True)
class HandshakeOutcome:
    accepted: bool
    user: UserProjection | None = None
    reason: str | None = None


class EventError(Exception):
    pass


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


async def authenticate_connection(services: Services, token: str | None, mode: str = AUTH_REQUIRED) -> HandshakeOutcome:
    """Authenticate a socket handshake.

    In required mode every failure rejects with a reason. In optional mode every
    failure admits the socket as a guest.
    """
    guest = HandshakeOutcome(accepted=True)

    if not token:
        if mode == AUTH_OPTIONAL:
            return guest
        logger.warning("Socket connection attempted without token")
        return HandshakeOutcome(accepted=False, reason="Authentication error")

    try:
        ctx = await authenticate_token(services, token)
    except Exception as exc:
        if mode == AUTH_OPTIONAL:
            logger.debug("Optional socket authentication failed, continuing as guest")
            return guest
        reason = _rejection_reason(exc)
        logger.warning("Socket authentication failed: %s", reason)
        return HandshakeOutcome(accepted=False, reason=reason)

    logger.info("Socket authenticated for user: %s (%s)", ctx.user.username, ctx.user.id)
    return HandshakeOutcome(accepted=True, user=ctx.user)


def _rejection_reason(exc: Exception) -> str:
    if isinstance(exc, UserNotFound):
        return "User not found"
    if isinstance(exc, AccountRestricted):
        return "Account restricted"
    if isinstance(exc, TokenExpired):
        return "Token expired"
    if isinstance(exc, InvalidToken):
        return "Invalid token"
    logger.error("Unexpected socket authentication error", exc_info=exc)
    return "Authentication error"


def _video_id(data: dict[str, Any]) -> str:
    video_id = data.get("videoId")
    if isinstance(video_id, int) and not isinstance(video_id, bool):
        video_id = str(video_id)
    if not isinstance(video_id, str) or not video_id:
        raise EventError("videoId is required")
    return video_id


class Gateway:
    def __init__(self, hub: RoomHub):
        self.hub = hub
        self._handlers = {
            "watch_video": self.on_watch_video,
            "leave_video": self.on_leave_video,
            "new_comment": self.on_new_comment,
            "join_live_chat": self.on_join_live_chat,
            "leave_live_chat": self.on_leave_live_chat,
            "live_message": self.on_live_message,
        }

    async def connect(self, conn: Connection) -> None:
        self.hub.register(conn)
        if conn.user is not None:
            self.hub.join(conn, user_room(conn.user.id))
            logger.info("User connected: %s", conn.user_id)
        else:
            logger.info("Guest connected: %s", conn.id)
        await conn.emit("connected", {"user": conn.user.to_session_dict() if conn.user else None})

    async def disconnect(self, conn: Connection) -> None:
        self.hub.unregister(conn)
        logger.info("User disconnected: %s", conn.user_id or f"guest {conn.id}")

    async def dispatch(self, conn: Connection, message: Any) -> bool:
        """Route one client frame. Returns False when it was rejected."""
        if not isinstance(message, dict):
            await conn.emit("error", {"message": "Invalid message format"})
            return False

        event = message.get("event")
        handler = self._handlers.get(event) if isinstance(event, str) else None
        if handler is None:
            await conn.emit("error", {"message": f"Unknown event: {event}"})
            return False

        data = message.get("data") or {}
        if not isinstance(data, dict):
            await conn.emit("error", {"event": event, "message": "Event data must be an object"})
            return False

        try:
            await handler(conn, data)
        except EventError as exc:
            await conn.emit("error", {"event": event, "message": str(exc)})
            return False
        return True

    async def on_watch_video(self, conn: Connection, data: dict) -> None:
        room = video_room(_video_id(data))
        self.hub.join(conn, room)
        await self.hub.emit(
            room, "viewer_joined", {"userId": conn.user_id, "timestamp": _timestamp()}, skip=conn
        )

    async def on_leave_video(self, conn: Connection, data: dict) -> None:
        self.hub.leave(conn, video_room(_video_id(data)))

    async def on_new_comment(self, conn: Connection, data: dict) -> None:
        # Persistence happens through the comments API; this only fans out
        await self.hub.emit(video_room(_video_id(data)), "comment_added", data.get("comment"), skip=conn)

    async def on_join_live_chat(self, conn: Connection, data: dict) -> None:
        self.hub.join(conn, live_room(_video_id(data)))

    async def on_leave_live_chat(self, conn: Connection, data: dict) -> None:
        self.hub.leave(conn, live_room(_video_id(data)))

    async def on_live_message(self, conn: Connection, data: dict) -> None:
        if conn.is_guest:
            raise EventError("Authentication required to send live messages")
        room = live_room(_video_id(data))
        message = data.get("message")
        if not isinstance(message, dict):
            raise EventError("message must be an object")
        # Sender identity comes from the handshake, never from the payload
        payload = {**message, "userId": conn.user_id, "timestamp": _timestamp()}
        await self.hub.emit(room, "live_message", payload)
