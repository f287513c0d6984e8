"""Data service — orchestrates one CRUD request through rules, store and queries.

Read flow:
    store.get → query engine (where, sort, paging, distinct)
      → read rule per record → count | (select, load) → field redaction

Write flow:
    existing record (update/delete) → action + field rules → store write
"""

import logging

from docstore.application.interfaces import RecordStore
from docstore.application.services.query_engine import QueryEngine
from docstore.application.services.rule_engine import RuleEngine
from docstore.domain.entities import ID_FIELD, Action, DataRequest, Record
from docstore.domain.exceptions import RequestError

logger = logging.getLogger(__name__)

DataResult = Record | list[Record] | list[str] | int | dict[str, int]


class DataService:
    """Executes ``DataRequest``s. Depends on the store ports and engines (DI)."""

    def __init__(
        self,
        store: RecordStore,
        protected_store: RecordStore,
        rule_engine: RuleEngine,
        query_engine: QueryEngine,
        identity_collection: str = "users",
    ):
        self._store = store
        self._protected_store = protected_store
        self._rules = rule_engine
        self._queries = query_engine
        self._identity_collection = identity_collection

    def execute(self, request: DataRequest) -> DataResult:
        logger.debug("Executing %s", request.describe())
        if request.action == Action.READ:
            return self.read(request)
        if request.action == Action.CREATE:
            return self.create(request)
        if request.action == Action.UPDATE:
            return self.update(request)
        if request.action == Action.DELETE:
            return self.delete(request)
        raise RequestError(f"Unsupported action: {request.action}")

    # ── Read ────────────────────────────────────────────────────────

    def read(self, request: DataRequest) -> DataResult:
        if not request.collection:
            self._rules.enforce(
                Action.READ, None,
                principal=request.principal, data={},
                admin_override=request.admin_override,
            )
            return self._store.list_collections()

        query = request.query
        if query.where or request.record_id is None:
            records = self._queries.arrange(self._store.get(request.collection), query)
            denied = [self._gate_read(request, record) for record in records]
            if query.wants_count:
                return len(records)
            shaped = self._queries.shape(records, query, self._fetch_related)
            return [_redact(record, fields) for record, fields in zip(shaped, denied)]

        record = self._store.get(request.collection, request.record_id)
        denied_fields = self._gate_read(request, record)
        shaped = self._queries.shape([record], query, self._fetch_related)[0]
        return _redact(shaped, denied_fields)

    def _gate_read(self, request: DataRequest, record: Record) -> list[str]:
        return self._rules.enforce(
            Action.READ, request.collection,
            principal=request.principal,
            data=record,
            admin_override=request.admin_override,
        )

    def _fetch_related(self, collection: str, record_id: str) -> Record:
        source = self._protected_store if collection == self._identity_collection else self._store
        return source.get(collection, record_id)

    # ── Writes ──────────────────────────────────────────────────────

    def create(self, request: DataRequest) -> Record:
        collection = self._require_collection(request)
        if request.record_id is not None:
            raise RequestError("Use PUT to update records")

        payload = dict(request.payload or {})
        self._rules.enforce(
            Action.CREATE, collection,
            principal=request.principal,
            data={},
            new_data=payload,
            admin_override=request.admin_override,
        )
        record = self._store.add(collection, payload, owner_id=request.user_id)
        logger.info("Created %s/%s", collection, record[ID_FIELD])
        return record

    def update(self, request: DataRequest) -> Record:
        collection = self._require_collection(request)
        record_id = self._require_record_id(request)

        existing = self._store.get(collection, record_id)
        payload = dict(request.payload or {})
        self._rules.enforce(
            Action.UPDATE, collection,
            principal=request.principal,
            data=existing,
            new_data=payload,
            admin_override=request.admin_override,
        )
        if request.merge:
            record = self._store.merge(collection, record_id, payload)
        else:
            record = self._store.set(collection, record_id, payload)
        logger.info("%s %s/%s", "Merged" if request.merge else "Replaced", collection, record_id)
        return record

    def delete(self, request: DataRequest) -> dict[str, int]:
        collection = self._require_collection(request)
        record_id = self._require_record_id(request)

        existing = self._store.get(collection, record_id)
        self._rules.enforce(
            Action.DELETE, collection,
            principal=request.principal,
            data=existing,
            admin_override=request.admin_override,
        )
        result = self._store.delete(collection, record_id)
        logger.info("Deleted %s/%s", collection, record_id)
        return result

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    def _require_collection(request: DataRequest) -> str:
        if not request.collection:
            raise RequestError("Missing collection name")
        return request.collection

    @staticmethod
    def _require_record_id(request: DataRequest) -> str:
        if request.record_id is None:
            raise RequestError("Missing entry ID")
        return request.record_id


def _redact(record: Record, fields: list[str]) -> Record:
    if not fields:
        return record
    return {key: value for key, value in record.items() if key not in fields}
