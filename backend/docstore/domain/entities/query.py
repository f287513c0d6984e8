"""Domain entities for collection queries — filter, sort, paging and shaping."""

from collections.abc import Mapping
from dataclasses import dataclass


@dataclass
class SortSpec:
    """A single ``field [desc]`` sort specifier."""

    field_name: str
    descending: bool = False


@dataclass
class LoadSpec:
    """A single ``prop=idField:collection`` relation to attach."""

    prop: str
    id_field: str
    collection: str


@dataclass
class QueryParams:
    """Raw query parameters as received from the caller.

    Every value is the unparsed string from the request; ``None`` means the
    parameter was not supplied. Parsing happens in the query engine so that
    syntax errors surface as request errors.
    """

    where: str | None = None
    sort_by: str | None = None
    offset: str | None = None
    page_size: str | None = None
    distinct: str | None = None
    count: str | None = None
    select: str | None = None
    load: str | None = None

    @classmethod
    def from_mapping(cls, params: Mapping[str, str]) -> "QueryParams":
        return cls(
            where=params.get("where"),
            sort_by=params.get("sortBy"),
            offset=params.get("offset"),
            page_size=params.get("pageSize"),
            distinct=params.get("distinct"),
            count=params.get("count"),
            select=params.get("select"),
            load=params.get("load"),
        )

    @property
    def wants_count(self) -> bool:
        return bool(self.count)
