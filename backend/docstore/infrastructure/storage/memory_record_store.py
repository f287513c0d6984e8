"""In-memory record store — process-local collections guarded by one lock.

Layout:
    _collections[<collection>][<record id>] -> record (without its ``_id``)

Records never leave the store by reference: every read returns a deep copy
annotated with ``_id``, and every write stores a deep copy of its input.
"""

import copy
import logging
import threading
import uuid
from collections.abc import Mapping
from typing import Any

from docstore.application.interfaces import RecordStore
from docstore.domain.comparison import loose_equals
from docstore.domain.entities import (
    CREATED_FIELD,
    DELETED_FIELD,
    ID_FIELD,
    OWNER_FIELD,
    SYSTEM_FIELDS,
    UPDATED_FIELD,
    Record,
    strip_system_fields,
    timestamp_ms,
)
from docstore.domain.exceptions import NotFoundError

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


def _with_id(record: Record, record_id: str) -> Record:
    result = copy.deepcopy(record)
    result[ID_FIELD] = record_id
    return result


class InMemoryRecordStore(RecordStore):
    """Infrastructure adapter keeping every collection in a dict.

    Each public operation holds ``self._lock`` for its whole duration, so
    check-then-write sequences (existence checks, id collision retries) are
    atomic with respect to concurrent requests.
    """

    def __init__(
        self,
        seed_data: Mapping[str, Mapping[str, Record]] | None = None,
        name: str = "store",
    ):
        self._name = name
        self._lock = threading.RLock()
        self._collections: dict[str, dict[str, Record]] = {}
        if seed_data:
            self.load(seed_data)

    # ── Seeding ─────────────────────────────────────────────────────

    def load(self, seed_data: Mapping[str, Mapping[str, Record]]) -> None:
        """Populate collections from a ``{collection: {id: record}}`` snapshot."""
        with self._lock:
            for collection, records in seed_data.items():
                target = self._collections.setdefault(collection, {})
                for record_id, record in records.items():
                    target[str(record_id)] = copy.deepcopy(dict(record))
            logger.info(
                "Loaded %d collection(s) into %s: %s",
                len(seed_data), self._name, ", ".join(sorted(seed_data)) or "-",
            )

    # ── Reads ───────────────────────────────────────────────────────

    def list_collections(self) -> list[str]:
        with self._lock:
            return list(self._collections.keys())

    def get(self, collection: str, record_id: str | None = None) -> Record | list[Record]:
        with self._lock:
            target = self._require_collection(collection)
            if record_id is None:
                return [_with_id(record, key) for key, record in target.items()]
            return _with_id(self._require_record(target, record_id), record_id)

    def query(self, collection: str, exact_match: dict[str, Any]) -> list[Record]:
        with self._lock:
            target = self._require_collection(collection)
            return [
                _with_id(record, key)
                for key, record in target.items()
                if self._matches(record, exact_match)
            ]

    # ── Writes ──────────────────────────────────────────────────────

    def add(self, collection: str, data: Record, owner_id: str | None = None) -> Record:
        with self._lock:
            target = self._collections.get(collection)
            if target is None:
                target = self._collections[collection] = {}
                logger.debug("Created collection '%s' in %s", collection, self._name)

            record_id = _new_id()
            while record_id in target:
                record_id = _new_id()

            record: Record = {}
            if owner_id is not None:
                record[OWNER_FIELD] = owner_id
            record.update(copy.deepcopy(strip_system_fields(data)))
            record[CREATED_FIELD] = timestamp_ms()

            target[record_id] = record
            logger.debug("Added %s/%s", collection, record_id)
            return _with_id(record, record_id)

    def set(self, collection: str, record_id: str, data: Record) -> Record:
        with self._lock:
            target = self._require_collection(collection)
            existing = self._require_record(target, record_id)

            record = copy.deepcopy(strip_system_fields(data))
            for name in SYSTEM_FIELDS:
                if name in existing:
                    record[name] = copy.deepcopy(existing[name])
            record[UPDATED_FIELD] = timestamp_ms()

            target[record_id] = record
            logger.debug("Replaced %s/%s", collection, record_id)
            return _with_id(record, record_id)

    def merge(self, collection: str, record_id: str, data: Record) -> Record:
        with self._lock:
            target = self._require_collection(collection)
            record = copy.deepcopy(self._require_record(target, record_id))

            record.update(copy.deepcopy(strip_system_fields(data)))
            record[UPDATED_FIELD] = timestamp_ms()

            target[record_id] = record
            logger.debug("Merged %s/%s", collection, record_id)
            return _with_id(record, record_id)

    def delete(self, collection: str, record_id: str) -> dict[str, int]:
        with self._lock:
            target = self._require_collection(collection)
            self._require_record(target, record_id)
            del target[record_id]
            logger.debug("Deleted %s/%s", collection, record_id)
            return {DELETED_FIELD: timestamp_ms()}

    # ── Helpers ─────────────────────────────────────────────────────

    def _require_collection(self, collection: str) -> dict[str, Record]:
        target = self._collections.get(collection)
        if target is None:
            raise NotFoundError(f"Collection does not exist: {collection}")
        return target

    @staticmethod
    def _require_record(target: dict[str, Record], record_id: str) -> Record:
        record = target.get(record_id)
        if record is None:
            raise NotFoundError(f"Entry does not exist: {record_id}")
        return record

    @staticmethod
    def _matches(record: Record, exact_match: dict[str, Any]) -> bool:
        for name, expected in exact_match.items():
            if name not in record:
                return False
            actual = record[name]
            if isinstance(expected, str) and isinstance(actual, str):
                if expected.casefold() != actual.casefold():
                    return False
            elif not loose_equals(expected, actual):
                return False
        return True
