# wlboard/realtime/hub.py
import logging
from typing import Any

from wlboard.core.timeutils import utc_now_iso
from wlboard.models.presence import PresenceEntry
from wlboard.models.user import Identity
from wlboard.realtime.channel import (
    ACTIVITY,
    EDITING,
    INITIAL_DATA,
    STOP_EDITING,
    USER_JOINED,
    USER_LEFT,
    Connection,
    ConnectionManager,
)
from wlboard.realtime.presence import PresenceRegistry
from wlboard.repositories.partnership_repo import RecordStore

logger = logging.getLogger(__name__)


class RealtimeHub:
    """
    Connection lifecycle for the real-time channel.

      open()   transport accepted; starts receiving broadcasts
      admit()  identity known; presence + snapshot + userJoined
      handle() inbound editing / stopEditing / activity
      close()  presence removed; userLeft to the remaining connections

    On the authenticated board open() and admit() happen back to back.
    On the open board admit() waits for the client's `register` event.
    """

    def __init__(
        self,
        presence: PresenceRegistry,
        connections: ConnectionManager,
        store: RecordStore,
    ):
        self.presence = presence
        self.connections = connections
        self.store = store

    def open(self, connection: Connection) -> None:
        self.connections.attach(connection)

    def admit(self, connection_id: str, identity: Identity) -> PresenceEntry:
        """
        Register presence, send the snapshot to the newcomer and announce
        them to everybody else. A second call for the same connection is a
        no-op that returns the existing entry.
        """
        if connection_id in self.presence:
            return self.presence.get(connection_id)

        entry = self.presence.add(connection_id, identity)
        self.connections.send(
            connection_id,
            INITIAL_DATA,
            {
                "records": [r.model_dump() for r in self.store.list()],
                "connectedUsers": [e.model_dump() for e in self.presence.all()],
                "user": identity.model_dump(),
                "connectionId": connection_id,
            },
        )
        self.connections.publish_except(connection_id, USER_JOINED, entry.model_dump())
        logger.info("🔗 Connected: %s (%s)", entry.name, entry.email or connection_id)
        return entry

    def handle(self, connection_id: str, event: str, data: Any) -> None:
        """
        Dispatch one inbound event. Events from connections that have not
        been admitted yet are ignored, as are unknown events.
        """
        entry = self.presence.get(connection_id)
        if entry is None:
            return

        if event == ACTIVITY:
            self.presence.touch(connection_id)
            return

        if event in (EDITING, STOP_EDITING):
            self.presence.touch(connection_id)
            data = data if isinstance(data, dict) else {}
            self.connections.publish_except(
                connection_id,
                event,
                {
                    "user": entry.model_dump(),
                    "recordId": data.get("recordId"),
                    "field": data.get("field"),
                    "timestamp": utc_now_iso(),
                },
            )

    def close(self, connection_id: str) -> PresenceEntry | None:
        """
        Forget a connection. Safe to call for connections that were never
        admitted (failed or abandoned handshake).
        """
        self.connections.detach(connection_id)
        entry = self.presence.remove(connection_id)
        if entry is not None:
            self.connections.publish(USER_LEFT, entry.model_dump())
            logger.info("👋 Disconnected: %s", entry.name)
        return entry
