# wlboard/repositories/partnership_repo.py
from typing import Any, Iterable

from wlboard.core.errors import NotFound
from wlboard.database import PARTNERSHIPS, validate_documents
from wlboard.core.timeutils import utc_now_iso
from wlboard.models.partnership import Partnership, new_record_id
from wlboard.models.user import Identity

RECORD_NOT_FOUND = "Partnership not found"

# Fields a client may set on create/update. Everything else (id,
# timestamps, attribution) is server-owned.
EDITABLE_FIELDS = (
    "projectName",
    "numberOfWLs",
    "templateDescription",
    "collectedWallets",
)


class RecordStore:
    """
    Authoritative in-memory list of partnership records.

    Responsibilities:
      - sole owner of record identity and ordering (newest first)
      - field defaults / coercion on create, shallow merge on update
      - no persistence, no broadcasting (see PartnershipService)
    """

    def __init__(self, records: Iterable[Partnership] = ()):
        self._records: list[Partnership] = list(records)

    @classmethod
    def from_documents(cls, docs: Iterable[dict[str, Any]]) -> "RecordStore":
        return cls(validate_documents(Partnership, docs, PARTNERSHIPS))

    def to_documents(self) -> list[dict[str, Any]]:
        """JSON-ready snapshot, in list order."""
        return [r.model_dump() for r in self._records]

    def __len__(self) -> int:
        return len(self._records)

    # ----- Queries -----

    def list(self) -> list[Partnership]:
        return list(self._records)

    def get(self, record_id: str) -> Partnership | None:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def _index_of(self, record_id: str) -> int:
        for i, record in enumerate(self._records):
            if record.id == record_id:
                return i
        raise NotFound(RECORD_NOT_FOUND)

    def _new_id(self) -> str:
        record_id = new_record_id()
        while self.get(record_id) is not None:
            record_id = new_record_id()
        return record_id

    # ----- Mutations -----

    def create(self, fields: dict[str, Any], actor: Identity) -> Partnership:
        """Build a record from `fields` and prepend it."""
        now = utc_now_iso()
        record = Partnership(
            id=self._new_id(),
            projectName=fields.get("projectName") or "",
            numberOfWLs=fields.get("numberOfWLs"),
            templateDescription=fields.get("templateDescription") or "",
            collectedWallets=fields.get("collectedWallets") or "",
            createdAt=now,
            updatedAt=now,
            createdBy=actor.name,
            createdByEmail=actor.email,
            lastModifiedBy=actor.name,
            lastModifiedByEmail=actor.email,
        )
        self._records.insert(0, record)
        return record

    def update(
        self,
        record_id: str,
        changes: dict[str, Any],
        actor: Identity,
    ) -> Partnership:
        """
        Shallow-merge `changes` over an existing record, in place.

        Omitted fields keep their prior values; unknown keys are ignored.

        Raises:
            NotFound: if `record_id` is absent (collection untouched).
        """
        index = self._index_of(record_id)
        current = self._records[index]

        merged = current.model_dump()
        merged.update({k: v for k, v in changes.items() if k in EDITABLE_FIELDS})
        merged.update(
            updatedAt=utc_now_iso(),
            lastModifiedBy=actor.name,
            lastModifiedByEmail=actor.email,
        )
        updated = Partnership.model_validate(merged)
        self._records[index] = updated
        return updated

    def delete(self, record_id: str) -> Partnership:
        """
        Remove a record and return it.

        Raises:
            NotFound: if `record_id` is absent.
        """
        index = self._index_of(record_id)
        return self._records.pop(index)

    def clear_all(self) -> int:
        """Drop every record. Returns how many there were."""
        count = len(self._records)
        self._records = []
        return count
