"""Query engine — filter, sort, paging, de-duplication and shaping of records.

Works purely on record lists already copied out of a store. Stages run in
this order:

    where → sortBy → offset/pageSize → distinct → (count) → select → load

``arrange`` covers everything up to ``distinct``; ``shape`` covers
``select`` and ``load``. Callers decide what happens in between (access
checks, the ``count`` short-circuit).
"""

import json
import logging
import re
from collections.abc import Callable
from functools import cmp_to_key
from typing import Any

from docstore.domain.comparison import compare_order, is_number, loose_equals, strict_equals
from docstore.domain.entities import (
    PASSWORD_HASH_FIELD,
    LoadSpec,
    QueryParams,
    Record,
    SortSpec,
)
from docstore.domain.exceptions import RequestError

logger = logging.getLogger(__name__)

WHERE_SYNTAX_ERROR = "Could not parse WHERE clause, check your syntax."

DEFAULT_PAGE_SIZE = 10

_CLAUSE_PATTERN = re.compile(r"^(.+?)(<=|<|>=|>|=| like | in )(.+?)$", re.IGNORECASE | re.DOTALL)
_AND_PATTERN = re.compile(r" and ", re.IGNORECASE)
_OR_PATTERN = re.compile(r" or ", re.IGNORECASE)
_IN_LIST_PATTERN = re.compile(r"\((.+?)\)", re.DOTALL)

RecordPredicate = Callable[[Record], bool]
RelatedFetcher = Callable[[str, str], Record]


def _ordering(test: Callable[[int], bool]) -> Callable[[str, Any], RecordPredicate]:
    def build(prop: str, literal: Any) -> RecordPredicate:
        def check(record: Record) -> bool:
            result = compare_order(record.get(prop), literal)
            return result is not None and test(result)
        return check
    return build


def _equals(prop: str, literal: Any) -> RecordPredicate:
    return lambda record: loose_equals(record.get(prop), literal)


def _like(prop: str, literal: Any) -> RecordPredicate:
    needle = _to_text(literal).lower()

    def check(record: Record) -> bool:
        value = record.get(prop)
        return value is not None and needle in _to_text(value).lower()
    return check


def _member_of(prop: str, items: list[Any]) -> RecordPredicate:
    def check(record: Record) -> bool:
        if prop not in record:
            return False
        value = record[prop]
        return any(strict_equals(value, item) for item in items)
    return check


_OPERATORS: dict[str, Callable[[str, Any], RecordPredicate]] = {
    "<=": _ordering(lambda c: c <= 0),
    "<": _ordering(lambda c: c < 0),
    ">=": _ordering(lambda c: c >= 0),
    ">": _ordering(lambda c: c > 0),
    "=": _equals,
    " like ": _like,
    " in ": _member_of,
}


def _to_text(value: Any) -> str:
    """String form of a JSON value as a JS runtime would print it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"))


def _to_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return None


def _split_list(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [part for part in raw.split(",") if part != ""]


def _compare_for_sort(field_name: str) -> Callable[[Record, Record], int]:
    def compare(a: Record, b: Record) -> int:
        left, right = a.get(field_name), b.get(field_name)
        if is_number(left) and is_number(right):
            return (left > right) - (left < right)
        left_key = (_to_text(left).casefold(), _to_text(left))
        right_key = (_to_text(right).casefold(), _to_text(right))
        return (left_key > right_key) - (left_key < right_key)
    return compare


class QueryEngine:
    """Interprets the query parameters of a read request."""

    def __init__(
        self,
        identity_collection: str = "users",
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self._identity_collection = identity_collection
        self._default_page_size = default_page_size

    # ── Parsing ─────────────────────────────────────────────────────

    def parse_where(self, expression: str) -> RecordPredicate:
        """Compile a ``where`` expression into a record predicate.

        Clauses are ``field OP literal`` with JSON literals. One expression
        uses a single connective: ``and`` is detected first, then ``or``.
        """
        try:
            if _AND_PATTERN.search(expression):
                checks = [self._parse_clause(c) for c in _AND_PATTERN.split(expression)]
                return lambda record: all(check(record) for check in checks)
            if _OR_PATTERN.search(expression):
                checks = [self._parse_clause(c) for c in _OR_PATTERN.split(expression)]
                return lambda record: any(check(record) for check in checks)
            return self._parse_clause(expression.strip())
        except (ValueError, AttributeError) as exc:
            logger.debug("Rejected where clause %r: %s", expression, exc)
            raise RequestError(WHERE_SYNTAX_ERROR) from exc

    @staticmethod
    def _parse_clause(clause: str) -> RecordPredicate:
        match = _CLAUSE_PATTERN.match(clause)
        if match is None:
            raise ValueError(f"no operator in clause {clause!r}")
        prop, operator, raw_value = match.groups()
        prop, raw_value = prop.strip(), raw_value.strip()
        operator = operator.lower()

        if operator == " in ":
            inner = _IN_LIST_PATTERN.search(raw_value)
            if inner is None:
                raise ValueError(f"'in' expects a parenthesised list, got {raw_value!r}")
            literal = json.loads(f"[{inner.group(1)}]")
        else:
            literal = json.loads(raw_value)
        return _OPERATORS[operator](prop, literal)

    @staticmethod
    def parse_sort(sort_by: str | None) -> list[SortSpec]:
        specs = []
        for part in _split_list(sort_by):
            tokens = part.split()
            if not tokens:
                continue
            descending = len(tokens) > 1 and tokens[1].lower() == "desc"
            specs.append(SortSpec(field_name=tokens[0], descending=descending))
        return specs

    @staticmethod
    def parse_load(load: str | None) -> list[LoadSpec]:
        specs = []
        for part in _split_list(load):
            prop, sep, relation = part.partition("=")
            id_field, colon, collection = relation.partition(":")
            if not (sep and colon and prop and id_field and collection):
                raise RequestError(f"Invalid load specifier '{part}', expected prop=idField:collection")
            specs.append(LoadSpec(prop=prop, id_field=id_field, collection=collection))
        return specs

    # ── Stages ──────────────────────────────────────────────────────

    def arrange(self, records: list[Record], params: QueryParams) -> list[Record]:
        """Apply where, sortBy, offset, pageSize and distinct, in that order."""
        result = list(records)
        if params.where:
            predicate = self.parse_where(params.where)
            result = [record for record in result if predicate(record)]
        result = self.sort(result, self.parse_sort(params.sort_by))
        result = self.paginate(result, params.offset, params.page_size)
        if params.distinct:
            result = self.distinct(result, _split_list(params.distinct))
        return result

    @staticmethod
    def sort(records: list[Record], specs: list[SortSpec]) -> list[Record]:
        """Stable multi-key sort; the first specifier has the highest priority."""
        result = list(records)
        for spec in reversed(specs):
            result.sort(key=cmp_to_key(_compare_for_sort(spec.field_name)), reverse=spec.descending)
        return result

    def paginate(self, records: list[Record], offset: str | None, page_size: str | None) -> list[Record]:
        result = records
        if offset:
            result = result[_to_int(offset) or 0:]
        if page_size:
            result = result[: _to_int(page_size) or self._default_page_size]
        return result

    @staticmethod
    def distinct(records: list[Record], fields: list[str]) -> list[Record]:
        """Keep the first record for each combination of ``fields`` values."""
        seen: dict[str, Record] = {}
        for record in records:
            key = "::".join(_to_text(record.get(name)) for name in fields)
            seen.setdefault(key, record)
        return list(seen.values())

    def shape(
        self,
        records: list[Record],
        params: QueryParams,
        fetch_related: RelatedFetcher | None = None,
    ) -> list[Record]:
        """Apply select, then load."""
        result = records
        if params.select:
            result = self.project(result, _split_list(params.select))
        if params.load:
            if fetch_related is None:
                raise RequestError("Relations cannot be loaded here")
            for spec in self.parse_load(params.load):
                result = self.load_related(result, spec, fetch_related)
        return result

    @staticmethod
    def project(records: list[Record], fields: list[str]) -> list[Record]:
        return [{name: record[name] for name in fields if name in record} for record in records]

    def load_related(
        self,
        records: list[Record],
        spec: LoadSpec,
        fetch_related: RelatedFetcher,
    ) -> list[Record]:
        """Attach the record of ``spec.collection`` whose ``_id`` matches ``spec.id_field``."""
        logger.debug(
            'Loading related records from "%s" into "%s", joined on "_id"="%s"',
            spec.collection, spec.prop, spec.id_field,
        )
        result = []
        for record in records:
            joined = dict(record)
            seek_id = record.get(spec.id_field)
            if seek_id is None:
                joined[spec.prop] = None
            else:
                related = fetch_related(spec.collection, _to_text(seek_id))
                if spec.collection == self._identity_collection:
                    related.pop(PASSWORD_HASH_FIELD, None)
                joined[spec.prop] = related
            result.append(joined)
        return result
