"""Domain entities for stored records — system fields and principals."""

import time
from dataclasses import dataclass, field
from typing import Any

from docstore.domain.comparison import loose_equals

Record = dict[str, Any]

ID_FIELD = "_id"
OWNER_FIELD = "_ownerId"
CREATED_FIELD = "_createdOn"
UPDATED_FIELD = "_updatedOn"
DELETED_FIELD = "_deletedOn"

SYSTEM_FIELDS: tuple[str, ...] = (ID_FIELD, CREATED_FIELD, UPDATED_FIELD, OWNER_FIELD)

PASSWORD_HASH_FIELD = "hashedPassword"


def timestamp_ms() -> int:
    """Current server time in integer milliseconds."""
    return int(time.time() * 1000)


def strip_system_fields(data: Record) -> Record:
    """Return a shallow copy of ``data`` without any system field."""
    return {key: value for key, value in data.items() if key not in SYSTEM_FIELDS}


@dataclass
class Principal:
    """The authenticated identity behind a request.

    ``attributes`` holds the user record minus its id and password hash.
    """

    id: str
    attributes: dict[str, Any] = field(default_factory=dict)

    def as_record(self) -> Record:
        """Mapping exposed to rule expressions as ``user``."""
        return {**self.attributes, ID_FIELD: self.id}

    def owns(self, record: Record | None) -> bool:
        return record is not None and loose_equals(record.get(OWNER_FIELD), self.id)
