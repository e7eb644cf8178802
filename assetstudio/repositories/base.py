"""Base repository interface."""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar, Optional, Dict, Any, List

from assetstudio.repositories.document_store import DocumentStore, PathLike
from assetstudio.errors import DocumentNotFoundError

T = TypeVar('T')


def is_safe_id(id: Any) -> bool:
    """Ids become path segments; reject anything that is not a plain name."""
    return (
        isinstance(id, str)
        and bool(id)
        and id not in (".", "..")
        and "/" not in id
        and "\\" not in id
        and not id.startswith(".")
    )


class Repository(ABC, Generic[T]):
    """
    Base repository interface.

    Abstracts data access - backed by the JSON document store today.
    Follows Repository pattern for easy testing and swapping implementations.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    @abstractmethod
    def get(self, id: str) -> Optional[T]:
        """Get entity by ID, or None when absent."""
        pass

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> T:
        """Assign identity and timestamps, validate, persist."""
        pass

    @abstractmethod
    def update(self, id: str, changes: Dict[str, Any]) -> Optional[T]:
        """Shallow-merge changes over the stored entity. None if absent."""
        pass

    @abstractmethod
    def delete(self, id: str) -> bool:
        """Delete entity by ID. Returns True if deleted, False if not found."""
        pass

    # ------------------------------------------------------------------
    # Index helpers shared by all repositories
    # ------------------------------------------------------------------

    def _read_index(self, index_path: PathLike) -> List[Dict[str, Any]]:
        """Load an index; a missing index is an empty collection."""
        try:
            entries = self.store.read_json(index_path)
        except DocumentNotFoundError:
            return []
        return entries if isinstance(entries, list) else []

    def _upsert_index(self, index_path: PathLike, document: Dict[str, Any]):
        """Replace the entry with the same id, else append."""
        with self.store.lock(index_path):
            entries = self._read_index(index_path)
            for i, entry in enumerate(entries):
                if entry.get("id") == document["id"]:
                    entries[i] = document
                    break
            else:
                entries.append(document)
            self.store.write_json(index_path, entries)

    def _remove_from_index(self, index_path: PathLike, id: str):
        with self.store.lock(index_path):
            entries = self._read_index(index_path)
            remaining = [e for e in entries if e.get("id") != id]
            self.store.write_json(index_path, remaining)
