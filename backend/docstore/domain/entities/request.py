"""Domain entity for a single data request flowing through the core."""

from dataclasses import dataclass, field
from typing import Any

from .query import QueryParams
from .record import Principal, Record
from .rule_set import Action


@dataclass
class DataRequest:
    """One CRUD request against a collection.

    ``merge`` only applies to ``Action.UPDATE``: a shallow field merge
    instead of a full replace.
    """

    action: Action
    collection: str | None = None
    record_id: str | None = None
    principal: Principal | None = None
    payload: Record | None = None
    query: QueryParams = field(default_factory=QueryParams)
    admin_override: bool = False
    merge: bool = False

    @property
    def user_id(self) -> str | None:
        return self.principal.id if self.principal else None

    def describe(self) -> dict[str, Any]:
        """Compact summary for log lines."""
        return {
            "action": self.action.value,
            "collection": self.collection,
            "id": self.record_id,
            "user": self.user_id,
            "admin": self.admin_override,
        }
