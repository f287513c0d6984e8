"""Abstract store interface (port) for record collections."""

from abc import ABC, abstractmethod
from typing import Any

from docstore.domain.entities import Record


class RecordStore(ABC):
    """Port for record storage, implemented in the infrastructure layer.

    Implementations own their records exclusively: every argument is copied
    on the way in and every result is a fresh copy on the way out.
    Missing collections or records raise ``NotFoundError``.
    """

    @abstractmethod
    def list_collections(self) -> list[str]:
        """Names of all collections."""
        ...

    @abstractmethod
    def get(self, collection: str, record_id: str | None = None) -> Record | list[Record]:
        """One record by id, or every record of the collection."""
        ...

    @abstractmethod
    def add(self, collection: str, data: Record, owner_id: str | None = None) -> Record:
        """Create a record under a freshly generated id."""
        ...

    @abstractmethod
    def set(self, collection: str, record_id: str, data: Record) -> Record:
        """Replace a record, keeping its system fields."""
        ...

    @abstractmethod
    def merge(self, collection: str, record_id: str, data: Record) -> Record:
        """Shallow-merge fields onto an existing record."""
        ...

    @abstractmethod
    def delete(self, collection: str, record_id: str) -> dict[str, int]:
        """Remove a record and return the deletion timestamp."""
        ...

    @abstractmethod
    def query(self, collection: str, exact_match: dict[str, Any]) -> list[Record]:
        """Records whose fields equal every key of ``exact_match``."""
        ...
