# wlboard/routers/realtime.py
import json
import logging
import uuid
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from wlboard.core.auth import resolve_token
from wlboard.core.errors import Unauthorized
from wlboard.models.user import Identity
from wlboard.realtime.channel import REGISTER, Connection
from wlboard.realtime.hub import RealtimeHub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


def _token_from(websocket: WebSocket) -> str | None:
    """Token from `?token=` (browsers) or an `Authorization: Bearer` header."""
    token = websocket.query_params.get("token")
    if token:
        return token
    header = websocket.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


async def _receive_text(websocket: WebSocket) -> str | None:
    """Next text frame; binary frames yield None."""
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
    return message.get("text")


def _parse(text: str | None) -> tuple[str | None, Any]:
    """Split a {"event", "data"} frame; malformed frames yield (None, None)."""
    if text is None:
        return None, None
    try:
        message = json.loads(text)
    except ValueError:
        return None, None
    if not isinstance(message, dict) or not isinstance(message.get("event"), str):
        return None, None
    return message["event"], message.get("data")


def _open_board_identity(data: Any, connection_id: str) -> Identity:
    name = data.get("name") if isinstance(data, dict) else None
    name = name.strip() if isinstance(name, str) else ""
    return Identity(name=name[:100] or f"User {connection_id[:6]}")


@router.websocket("/ws")
async def realtime_channel(websocket: WebSocket):
    """
    Bidirectional event channel, one per browser tab.

    Authenticated board: the token is verified before the connection is
    accepted; a bad token closes the handshake with 1008.
    Open board: accepted right away, admitted on the `register` event.
    """
    state = websocket.app.state
    hub: RealtimeHub = state.hub

    identity: Identity | None = None
    if state.settings.AUTH_ENABLED:
        try:
            identity = resolve_token(_token_from(websocket), state)
        except Unauthorized as exc:
            logger.warning("⛔ Realtime handshake rejected: %s", exc.message)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=exc.message)
            return

    await websocket.accept()
    connection = Connection(uuid.uuid4().hex, websocket)
    hub.open(connection)
    try:
        if identity is not None:
            hub.admit(connection.id, identity)

        while True:
            event, data = _parse(await _receive_text(websocket))
            if event is None:
                continue
            if event == REGISTER:
                if identity is None:
                    hub.admit(connection.id, _open_board_identity(data, connection.id))
                continue
            hub.handle(connection.id, event, data)
    except WebSocketDisconnect:
        pass
    finally:
        hub.close(connection.id)
        await connection.close()
