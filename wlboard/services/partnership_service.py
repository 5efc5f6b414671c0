# wlboard/services/partnership_service.py
from wlboard.database import PARTNERSHIPS, PersistenceGateway
from wlboard.models.partnership import Partnership
from wlboard.models.user import Identity
from wlboard.realtime.channel import (
    ALL_RECORDS_CLEARED,
    RECORD_ADDED,
    RECORD_DELETED,
    RECORD_UPDATED,
    ConnectionManager,
)
from wlboard.repositories.partnership_repo import RecordStore
from wlboard.schemas.partnership import PartnershipCreate, PartnershipUpdate


class PartnershipService:
    """
    Business logic for the shared partnership board.

    Every successful mutation runs, without yielding to the event loop:
      1. the in-memory change (RecordStore)
      2. a persistence request (snapshot handed to the gateway)
      3. a broadcast to every connection, the originator included

    So the broadcast always carries the fully-updated record, and two
    mutations never interleave their effects.
    """

    def __init__(
        self,
        store: RecordStore,
        gateway: PersistenceGateway,
        connections: ConnectionManager,
    ):
        self.store = store
        self.gateway = gateway
        self.connections = connections

    def _persist(self) -> None:
        self.gateway.schedule_save(PARTNERSHIPS, self.store.to_documents())

    # ----- Queries -----

    def list_records(self) -> list[Partnership]:
        return self.store.list()

    # ----- Mutations -----

    def create(self, payload: PartnershipCreate, actor: Identity) -> Partnership:
        record = self.store.create(payload.model_dump(exclude={"userName"}), actor)
        self._persist()
        self.connections.record_event(
            RECORD_ADDED, "add", actor.name, record=record.model_dump()
        )
        return record

    def update(
        self,
        record_id: str,
        payload: PartnershipUpdate,
        actor: Identity,
    ) -> Partnership:
        """
        Raises:
            NotFound: if the record does not exist (nothing persisted/broadcast).
        """
        record = self.store.update(record_id, payload.changes(), actor)
        self._persist()
        self.connections.record_event(
            RECORD_UPDATED,
            "update",
            actor.name,
            record=record.model_dump(),
            field=payload.field or "multiple",
        )
        return record

    def delete(self, record_id: str, actor: Identity) -> Partnership:
        """
        Raises:
            NotFound: if the record does not exist.
        """
        record = self.store.delete(record_id)
        self._persist()
        self.connections.record_event(
            RECORD_DELETED,
            "delete",
            actor.name,
            recordId=record.id,
            record=record.model_dump(),
        )
        return record

    def clear_all(self, actor: Identity) -> int:
        count = self.store.clear_all()
        self._persist()
        self.connections.record_event(
            ALL_RECORDS_CLEARED, "clear_all", actor.name, count=count
        )
        return count
