# wlboard/realtime/channel.py
import asyncio
import logging
from typing import Any

from fastapi import WebSocket

from wlboard.core.timeutils import utc_now_iso

logger = logging.getLogger(__name__)

# Outbound event names
INITIAL_DATA = "initialData"
USER_JOINED = "userJoined"
USER_LEFT = "userLeft"
RECORD_ADDED = "recordAdded"
RECORD_UPDATED = "recordUpdated"
RECORD_DELETED = "recordDeleted"
ALL_RECORDS_CLEARED = "allRecordsCleared"

# Inbound event names (EDITING / STOP_EDITING are relayed under the same name)
REGISTER = "register"
EDITING = "editing"
STOP_EDITING = "stopEditing"
ACTIVITY = "activity"


def frame(event: str, data: Any) -> dict[str, Any]:
    """Wire envelope for every message in both directions."""
    return {"event": event, "data": data}


class Connection:
    """
    One admitted WebSocket plus its outbound queue.

    A dedicated writer task drains the queue, so publishing never
    awaits the network and per-connection message order is kept.
    """

    def __init__(self, connection_id: str, websocket: WebSocket):
        self.id = connection_id
        self.websocket = websocket
        self.outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._writer: asyncio.Task | None = None

    def start(self) -> None:
        self._writer = asyncio.get_running_loop().create_task(self._drain())

    def send(self, message: dict[str, Any]) -> None:
        self.outbox.put_nowait(message)

    async def _drain(self) -> None:
        while True:
            message = await self.outbox.get()
            try:
                await self.websocket.send_json(message)
            except Exception:
                # Dead socket: the receive loop will notice and clean up.
                logger.warning("⚠️ Dropping message to %s (send failed)", self.id)
                return

    async def close(self) -> None:
        """Stop the writer. Anything still queued is dropped with the socket."""
        if self._writer is None:
            return
        self._writer.cancel()
        try:
            await self._writer
        except asyncio.CancelledError:
            pass


class ConnectionManager:
    """
    Broadcast fan-out over the live set of admitted connections.

    - publish():        to every connection (mutation events)
    - publish_except(): to every connection but one (presence + editing)
    - send():           to a single connection (initial snapshot)

    All three only enqueue; they never block the caller.
    """

    def __init__(self):
        self._connections: dict[str, Connection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def attach(self, connection: Connection) -> None:
        self._connections[connection.id] = connection
        connection.start()

    def detach(self, connection_id: str) -> Connection | None:
        return self._connections.pop(connection_id, None)

    def send(self, connection_id: str, event: str, data: Any) -> None:
        connection = self._connections.get(connection_id)
        if connection is not None:
            connection.send(frame(event, data))

    def publish(self, event: str, data: Any) -> None:
        message = frame(event, data)
        for connection in list(self._connections.values()):
            connection.send(message)

    def publish_except(self, sender_id: str, event: str, data: Any) -> None:
        message = frame(event, data)
        for connection in list(self._connections.values()):
            if connection.id != sender_id:
                connection.send(message)

    # ----- Mutation events -----

    def record_event(self, event: str, action: str, actor_name: str, **payload: Any) -> None:
        """Publish a record mutation to every connection, originator included."""
        self.publish(
            event,
            {
                **payload,
                "action": action,
                "timestamp": utc_now_iso(),
                "user": actor_name,
            },
        )
