# wlboard/database.py
import asyncio
import json
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Any, Callable, Iterable, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------
# JSON document storage
#
# Each logical collection (partnerships, users, allowed-emails) is one
# JSON file holding a plain ordered list of flat objects. Collections are
# independent: there are no cross-collection transactions.
#
# - save() always rewrites the whole collection (no diffs, no versions)
# - writes go to a temp file in the same directory, then get moved over
#   the target so a crash mid-write never leaves a half-written file
# ---------------------------------------------------------

PARTNERSHIPS = "partnerships"
USERS = "users"
ALLOWED_EMAILS = "allowed-emails"

Snapshot = Callable[[], list[dict[str, Any]]]

M = TypeVar("M", bound=BaseModel)


def validate_documents(model: type[M], docs: Iterable[Any], name: str) -> list[M]:
    """
    Validate loaded documents one by one.

    A document that fails validation is logged and skipped; the rest of
    the collection still loads.
    """
    valid: list[M] = []
    for index, doc in enumerate(docs):
        try:
            valid.append(model.model_validate(doc))
        except ValidationError as exc:
            logger.warning(
                "⚠️ Skipping invalid %s entry #%d: %s",
                name,
                index,
                exc.errors()[0]["msg"],
            )
    return valid


class JsonDocumentStore:
    """
    Blocking load/save of whole collections under one directory.

    No business logic, no asyncio. The gateway below decides when and
    from which thread these run.
    """

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    def path_for(self, name: str) -> Path:
        return self.data_dir / f"{name}.json"

    def exists(self, name: str) -> bool:
        return self.path_for(name).exists()

    def load(self, name: str) -> list[dict[str, Any]]:
        """
        Read a collection.

        Returns [] if the file is missing or does not hold a list.

        Raises:
            OSError / json.JSONDecodeError: if the file exists but is unreadable.
        """
        path = self.path_for(name)
        if not path.exists():
            return []
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, list) else []

    def save(self, name: str, items: list[dict[str, Any]]) -> None:
        """Atomically overwrite a collection with `items`."""
        path = self.path_for(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w", dir=str(path.parent), delete=False, encoding="utf-8"
        ) as tf:
            json.dump(items, tf, indent=2, ensure_ascii=False, default=str)
            temp_path = Path(tf.name)
        try:
            shutil.move(str(temp_path), str(path))
        except Exception:
            if temp_path.exists():
                temp_path.unlink()
            raise


class PersistenceGateway:
    """
    Best-effort durability for the in-memory collections.

    Responsibilities:
      - initial load (with optional first-run seed)
      - fire-and-forget writes after each mutation (`schedule_save`)
      - periodic flush of every registered collection
      - final flush at shutdown

    Failure policy: every persistence failure is logged and swallowed.
    The in-memory state stays the source of truth for the running process.

    Ordering: writes to one collection are serialized behind a per-collection
    asyncio.Lock and applied in request order, so the file always ends up
    holding the latest snapshot.
    """

    def __init__(self, documents: JsonDocumentStore):
        self.documents = documents
        self._snapshots: dict[str, Snapshot] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._pending: set[asyncio.Task] = set()

    # ----- Registration -----

    def register(self, name: str, snapshot: Snapshot) -> None:
        """
        Register a collection for periodic/shutdown flushes.

        `snapshot` must return a JSON-ready copy of the collection.
        """
        self._snapshots[name] = snapshot

    def _lock(self, name: str) -> asyncio.Lock:
        if name not in self._locks:
            self._locks[name] = asyncio.Lock()
        return self._locks[name]

    # ----- Load -----

    def load(
        self,
        name: str,
        seed: Callable[[], list[dict[str, Any]]] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Load a collection at startup.

        - Missing storage => [] (or `seed()`, which is persisted immediately).
        - Unreadable storage => logged, [].
        """
        if not self.documents.exists(name):
            if seed is None:
                return []
            items = seed()
            self.save(name, items)
            logger.info("🌱 Seeded %s with %d entries", name, len(items))
            return items

        try:
            return self.documents.load(name)
        except (OSError, ValueError):
            logger.exception("❌ Failed to load %s, starting empty", name)
            return []

    # ----- Save -----

    def save(self, name: str, items: list[dict[str, Any]]) -> bool:
        """Blocking save. Returns False (and logs) on failure."""
        try:
            self.documents.save(name, items)
        except Exception:
            logger.exception("❌ Failed to save %s", name)
            return False
        logger.info("💾 Saved %s (%d records)", name, len(items))
        return True

    async def save_async(self, name: str, items: list[dict[str, Any]]) -> bool:
        """Serialized, off-loop save of a snapshot."""
        async with self._lock(name):
            return await asyncio.to_thread(self.save, name, items)

    def schedule_save(self, name: str, items: list[dict[str, Any]]) -> None:
        """
        Request a write of `items` without waiting for it.

        Must be called from the event loop. The snapshot is taken by the
        caller, so later in-memory changes never leak into this write.
        """
        task = asyncio.get_running_loop().create_task(self.save_async(name, items))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for every scheduled write to finish."""
        while True:
            pending = [t for t in self._pending if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def flush_all(self) -> None:
        """Save every registered collection once."""
        for name, snapshot in list(self._snapshots.items()):
            await self.save_async(name, snapshot())

    async def run_periodic(self, interval_seconds: float) -> None:
        """
        Flush all collections every `interval_seconds`, until cancelled.

        A tick never overlaps the previous one: the loop awaits each flush.
        """
        while True:
            await asyncio.sleep(interval_seconds)
            logger.info("⏱️ Periodic backup")
            await self.flush_all()

    async def shutdown(self) -> None:
        """Drain pending writes, then flush everything one last time."""
        await self.drain()
        await self.flush_all()
        logger.info("💾 Data saved")
