"""WebSocket endpoint for live viewer, comment and chat events."""

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from viewmaxx.auth.dependencies import extract_bearer_token
from viewmaxx.realtime.gateway import Gateway, authenticate_connection
from viewmaxx.realtime.hub import Connection
from viewmaxx.services import Services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])

POLICY_VIOLATION = 1008


@router.websocket("/ws")
async def socket_endpoint(websocket: WebSocket):
    """
    Flow:
    1. Client connects with ``?token=<accessToken>`` or an Authorization header
    2. Handshake is authenticated; rejected sockets get ``connect_error`` and close 1008
    3. Accepted sockets join their personal room and receive ``connected``
    4. Client frames are dispatched to the gateway until disconnect
    """
    services: Services = websocket.app.state.services
    token = websocket.query_params.get("token") or extract_bearer_token(websocket.headers.get("authorization"))
    outcome = await authenticate_connection(services, token, services.settings.SOCKET_AUTH_MODE)

    await websocket.accept()
    if not outcome.accepted:
        await websocket.send_json({"event": "connect_error", "data": {"message": outcome.reason}})
        await websocket.close(code=POLICY_VIOLATION, reason=outcome.reason)
        return

    conn = Connection(websocket.send_json, outcome.user)
    gateway = Gateway(services.hub)
    await gateway.connect(conn)

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            raw = frame.get("text")
            if raw is None:
                # Binary frames carry no event envelope
                await conn.emit("error", {"message": "Invalid message format"})
                continue
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await conn.emit("error", {"message": "Invalid JSON format"})
                continue
            await gateway.dispatch(conn, message)
    except WebSocketDisconnect:
        pass
    finally:
        await gateway.disconnect(conn)
