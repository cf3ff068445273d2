"""Local implementations of the DocumentStore interface.

``InMemoryDocumentStore`` keeps collections in a dict and notifies live
subscribers after every change. ``JsonFileDocumentStore`` adds persistence to a
JSON file using ``aiofiles`` for async I/O.
"""

import asyncio
import copy
import json
import logging
import os
import time
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import aiofiles

from auracli.domain.interfaces.document_store import (
    SERVER_TIMESTAMP, DocumentStore, ErrorCallback, Increment, Snapshot, SnapshotCallback,
    Unsubscribe,
)
from auracli.domain.models.common import CollectionPath, DocumentData, DocumentId
from auracli.domain.models.errors import DocumentNotFoundError

logger = logging.getLogger(__name__)

_Listener = Tuple[SnapshotCallback, Optional[ErrorCallback]]


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store. Documents are deep-copied in and out."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._listeners: Dict[str, List[_Listener]] = {}
        self._clock = clock
        logger.info(f"{type(self).__name__} initialized.")

    # --- helpers ---

    def _resolve(self, value: Any, current: Any = None) -> Any:
        if value is SERVER_TIMESTAMP:
            return self._clock()
        if isinstance(value, Increment):
            return (current or 0) + value.amount
        return copy.deepcopy(value)

    def _snapshot(self, collection: str) -> Snapshot:
        docs = self._collections.get(collection, {})
        return [(DocumentId(doc_id), DocumentData(copy.deepcopy(data))) for doc_id, data in docs.items()]

    def _notify(self, collection: str) -> None:
        for on_snapshot, on_error in list(self._listeners.get(collection, [])):
            self._deliver(collection, on_snapshot, on_error)

    def _deliver(self, collection: str, on_snapshot: SnapshotCallback, on_error: Optional[ErrorCallback]) -> None:
        try:
            on_snapshot(self._snapshot(collection))
        except Exception as e:
            if on_error is not None:
                on_error(e)
            else:
                logger.error(f"Snapshot listener for '{collection}' failed: {e}", exc_info=True)

    async def _after_change(self, collection: str) -> None:
        self._notify(collection)

    # --- DocumentStore ---

    async def create(self, collection: CollectionPath, data: Dict[str, Any]) -> DocumentId:
        doc_id = DocumentId(uuid.uuid4().hex)
        document = {key: self._resolve(value) for key, value in data.items()}
        self._collections.setdefault(collection, {})[doc_id] = document
        logger.debug(f"Created document {doc_id} in '{collection}'")
        await self._after_change(collection)
        return doc_id

    async def update(self, collection: CollectionPath, doc_id: DocumentId, fields: Dict[str, Any]) -> None:
        document = self._collections.get(collection, {}).get(doc_id)
        if document is None:
            raise DocumentNotFoundError(collection, doc_id)
        for key, value in fields.items():
            document[key] = self._resolve(value, document.get(key))
        logger.debug(f"Updated document {doc_id} in '{collection}': {sorted(fields)}")
        await self._after_change(collection)

    async def get_all(self, collection: CollectionPath) -> Snapshot:
        return self._snapshot(collection)

    def subscribe(
        self,
        collection: CollectionPath,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Unsubscribe:
        listener = (on_snapshot, on_error)
        self._listeners.setdefault(collection, []).append(listener)
        self._deliver(collection, on_snapshot, on_error)

        def unsubscribe() -> None:
            listeners = self._listeners.get(collection, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe


class JsonFileDocumentStore(InMemoryDocumentStore):
    """In-memory store mirrored to a JSON file after every mutation.

    Writes go to a temporary file in the same directory which then replaces
    the store file, so a failed write never truncates existing leads. A
    mutation whose write fails is rolled back in memory and the error is
    re-raised.
    """

    def __init__(self, path: Path, clock: Callable[[], float] = time.time):
        super().__init__(clock=clock)
        self.path = Path(path)
        self._write_lock = asyncio.Lock()
        self._opened = False
        self._loaded_mtime_ns: Optional[int] = None

    def _file_mtime_ns(self) -> Optional[int]:
        try:
            return self.path.stat().st_mtime_ns
        except FileNotFoundError:
            return None

    async def _load(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        async with aiofiles.open(self.path, mode="r", encoding="utf-8") as f:
            raw = await f.read()
        data = json.loads(raw) if raw.strip() else {}
        if not isinstance(data, dict):
            raise ValueError(f"Store file {self.path} does not contain a JSON object")
        return data

    async def open(self) -> "JsonFileDocumentStore":
        """Loads existing documents from disk, if the file exists.

        The store counts as opened only after a successful load, so a failed
        open can be retried and never leads to the file being overwritten.
        """
        if self._opened:
            return self
        if not self.path.is_file():
            logger.info(f"Store file {self.path} not found, starting empty.")
        else:
            self._collections = await self._load()
            self._loaded_mtime_ns = self._file_mtime_ns()
            logger.info(f"Loaded {sum(len(docs) for docs in self._collections.values())} "
                        f"document(s) from {self.path}")
        self._opened = True
        return self

    async def refresh(self) -> bool:
        """Reloads the file if another process changed it and notifies listeners."""
        mtime_ns = self._file_mtime_ns()
        if mtime_ns is None or mtime_ns == self._loaded_mtime_ns:
            return False
        self._collections = await self._load()
        self._loaded_mtime_ns = mtime_ns
        logger.debug(f"Reloaded store from {self.path}")
        for collection in list(self._listeners):
            self._notify(collection)
        return True

    async def create(self, collection: CollectionPath, data: Dict[str, Any]) -> DocumentId:
        backup = copy.deepcopy(self._collections)
        try:
            return await super().create(collection, data)
        except (OSError, TypeError, ValueError):
            self._collections = backup
            raise

    async def update(self, collection: CollectionPath, doc_id: DocumentId, fields: Dict[str, Any]) -> None:
        backup = copy.deepcopy(self._collections)
        try:
            await super().update(collection, doc_id, fields)
        except (OSError, TypeError, ValueError):
            self._collections = backup
            raise

    async def _after_change(self, collection: str) -> None:
        await self._persist()
        await super()._after_change(collection)

    async def _persist(self) -> None:
        # Serialise before touching the disk: an unserialisable value must leave the file as it was
        payload = json.dumps(self._collections, indent=2, sort_keys=True)
        async with self._write_lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = self.path.with_name(f".{self.path.name}.{uuid.uuid4().hex}.tmp")
            try:
                async with aiofiles.open(temp_path, mode="w", encoding="utf-8") as f:
                    await f.write(payload)
                    await f.flush()
                os.replace(temp_path, self.path)
            except OSError:
                logger.error(f"Persisting store to {self.path} failed, file left unchanged.", exc_info=True)
                if temp_path.exists():
                    temp_path.unlink()
                raise
            self._loaded_mtime_ns = self._file_mtime_ns()
        logger.debug(f"Persisted store to {self.path}")
