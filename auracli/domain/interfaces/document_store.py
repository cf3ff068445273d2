"""Interface for the document store holding leads.

Defines create / subscribe / update operations keyed by a collection path.
"""

import abc
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..models.common import CollectionPath, DocumentData, DocumentId

Snapshot = List[Tuple[DocumentId, DocumentData]]
SnapshotCallback = Callable[[Snapshot], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class _Sentinel:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


# Placeholder replaced by the store with its own clock on write
SERVER_TIMESTAMP = _Sentinel()


class Increment:
    """Field transform: add ``amount`` to the stored numeric value (missing = 0)."""

    def __init__(self, amount: int = 1):
        self.amount = amount

    def __repr__(self) -> str:
        return f"Increment({self.amount})"


class DocumentStore(abc.ABC):
    """Abstract Base Class for document persistence."""

    async def open(self) -> "DocumentStore":
        """Loads backing state, if any. Safe to call more than once."""
        return self

    @abc.abstractmethod
    async def create(self, collection: CollectionPath, data: Dict[str, Any]) -> DocumentId:
        """Adds a document with a generated id and returns the id."""
        pass

    @abc.abstractmethod
    async def update(self, collection: CollectionPath, doc_id: DocumentId, fields: Dict[str, Any]) -> None:
        """Merges ``fields`` into an existing document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        pass

    @abc.abstractmethod
    async def get_all(self, collection: CollectionPath) -> Snapshot:
        """Returns every document of the collection."""
        pass

    @abc.abstractmethod
    def subscribe(
        self,
        collection: CollectionPath,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Unsubscribe:
        """Registers a live listener.

        The listener receives the current snapshot immediately and again after
        every change to the collection. Returns a function that detaches it.
        """
        pass

    async def refresh(self) -> bool:
        """Picks up changes made outside this process and notifies listeners.

        Returns True when new state was loaded. Stores without external
        backing state have nothing to pick up.
        """
        return False
