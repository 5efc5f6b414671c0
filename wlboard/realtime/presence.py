# wlboard/realtime/presence.py
from wlboard.core.timeutils import utc_now_iso
from wlboard.models.presence import PresenceEntry
from wlboard.models.user import Identity


class PresenceRegistry:
    """
    Live real-time connections and their metadata.

    Lifecycle:
      - add()    on successful handshake (idempotent per connection id)
      - touch()  on activity pings
      - remove() on disconnect, the only removal trigger

    No timeout-based eviction: an entry lives exactly as long as its
    connection.
    """

    def __init__(self):
        self._entries: dict[str, PresenceEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._entries

    def add(self, connection_id: str, identity: Identity) -> PresenceEntry:
        existing = self._entries.get(connection_id)
        if existing is not None:
            return existing

        now = utc_now_iso()
        entry = PresenceEntry(
            id=connection_id,
            userId=identity.id,
            name=identity.name,
            email=identity.email,
            role=identity.role,
            joinedAt=now,
            lastActivity=now,
        )
        self._entries[connection_id] = entry
        return entry

    def get(self, connection_id: str) -> PresenceEntry | None:
        return self._entries.get(connection_id)

    def touch(self, connection_id: str) -> None:
        """Refresh lastActivity. Unknown ids are ignored (may race with disconnect)."""
        entry = self._entries.get(connection_id)
        if entry is not None:
            entry.lastActivity = utc_now_iso()

    def remove(self, connection_id: str) -> PresenceEntry | None:
        """Drop the entry and return its last snapshot, or None if absent."""
        return self._entries.pop(connection_id, None)

    def all(self) -> list[PresenceEntry]:
        return list(self._entries.values())
