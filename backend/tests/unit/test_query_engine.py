"""Unit tests for the QueryEngine."""

import pytest

from docstore.application.services import QueryEngine
from docstore.domain.entities import QueryParams
from docstore.domain.exceptions import NotFoundError, RequestError


@pytest.fixture
def engine() -> QueryEngine:
    return QueryEngine()


@pytest.fixture
def games() -> list[dict]:
    return [
        {"_id": "1", "title": "Chess", "players": 2, "genre": "board"},
        {"_id": "2", "title": "Poker", "players": 6, "genre": "cards"},
        {"_id": "3", "title": "Checkers", "players": 2, "genre": "board"},
        {"_id": "4", "title": "Bridge", "players": 4, "genre": "cards"},
    ]


def _ids(records: list[dict]) -> list[str]:
    return [r["_id"] for r in records]


# ── where ────────────────────────────────────────────────────────────


def test_where_ordering_comparison(engine: QueryEngine):
    records = [{"x": 1}, {"x": 2}, {"x": 3}]
    result = engine.arrange(records, QueryParams(where="x>=2"))
    assert result == [{"x": 2}, {"x": 3}]


def test_where_or_connective(engine: QueryEngine):
    records = [{"x": 1}, {"x": 2}, {"x": 3}]
    result = engine.arrange(records, QueryParams(where="x=1 or x=3"))
    assert result == [{"x": 1}, {"x": 3}]


def test_where_and_connective(engine: QueryEngine, games: list[dict]):
    result = engine.arrange(games, QueryParams(where='genre="board" AND players<3'))
    assert _ids(result) == ["1", "3"]


def test_where_equality_is_loose(engine: QueryEngine, games: list[dict]):
    result = engine.arrange(games, QueryParams(where='players="6"'))
    assert _ids(result) == ["2"]


def test_where_like_is_case_insensitive_substring(engine: QueryEngine, games: list[dict]):
    result = engine.arrange(games, QueryParams(where='title like "CHE"'))
    assert _ids(result) == ["1", "3"]


def test_where_in_list(engine: QueryEngine, games: list[dict]):
    result = engine.arrange(games, QueryParams(where="players in (4, 6)"))
    assert _ids(result) == ["2", "4"]


def test_where_missing_field_never_satisfies_ordering(engine: QueryEngine):
    records = [{"_id": "a", "x": 5}, {"_id": "b"}]
    assert _ids(engine.arrange(records, QueryParams(where="x>1"))) == ["a"]
    assert _ids(engine.arrange(records, QueryParams(where="x<10"))) == ["a"]


@pytest.mark.parametrize("expression", [
    "players",
    "title=Chess",
    "players in 4, 6",
    'title="unterminated',
])
def test_where_syntax_errors(engine: QueryEngine, games: list[dict], expression: str):
    with pytest.raises(RequestError, match="Could not parse WHERE clause"):
        engine.arrange(games, QueryParams(where=expression))


# ── sortBy / paging / distinct ───────────────────────────────────────


def test_sort_priority_is_left_to_right(engine: QueryEngine):
    records = [{"a": 1, "b": 1}, {"a": 1, "b": 2}]
    result = engine.arrange(records, QueryParams(sort_by="a,b desc"))
    assert result == [{"a": 1, "b": 2}, {"a": 1, "b": 1}]


def test_sort_numbers_numerically_and_strings_lexically(engine: QueryEngine, games: list[dict]):
    by_players = engine.arrange(games, QueryParams(sort_by="players desc,title"))
    assert _ids(by_players) == ["2", "4", "3", "1"]

    by_title = engine.arrange(games, QueryParams(sort_by="title"))
    assert _ids(by_title) == ["4", "3", "1", "2"]


def test_sort_is_stable(engine: QueryEngine, games: list[dict]):
    result = engine.arrange(games, QueryParams(sort_by="genre"))
    assert _ids(result) == ["1", "3", "2", "4"]


def test_offset_and_page_size(engine: QueryEngine):
    records = [{"n": 1}, {"n": 2}, {"n": 3}]
    assert engine.arrange(records, QueryParams(offset="1", page_size="1")) == [{"n": 2}]


def test_page_size_only_applies_when_given(engine: QueryEngine):
    records = [{"n": i} for i in range(15)]
    assert len(engine.arrange(records, QueryParams())) == 15
    assert len(engine.arrange(records, QueryParams(page_size="abc"))) == 10
    assert engine.arrange(records, QueryParams(offset="x", page_size="2")) == [{"n": 0}, {"n": 1}]


def test_distinct_keeps_first_per_key(engine: QueryEngine, games: list[dict]):
    result = engine.arrange(games, QueryParams(distinct="genre"))
    assert _ids(result) == ["1", "2"]

    result = engine.arrange(games, QueryParams(distinct="genre,players"))
    assert _ids(result) == ["1", "2", "4"]


def test_stage_order_filter_sort_page(engine: QueryEngine, games: list[dict]):
    params = QueryParams(where='genre="cards"', sort_by="title", page_size="1")
    assert _ids(engine.arrange(games, params)) == ["4"]


# ── select / load ────────────────────────────────────────────────────


def test_select_projects_fields(engine: QueryEngine, games: list[dict]):
    result = engine.shape(games[:2], QueryParams(select="_id,title,missing"))
    assert result == [{"_id": "1", "title": "Chess"}, {"_id": "2", "title": "Poker"}]


def test_load_attaches_related_records(engine: QueryEngine):
    teams = {"t1": {"_id": "t1", "name": "Rocket"}}
    members = [{"_id": "m1", "teamId": "t1"}, {"_id": "m2"}]

    def fetch(collection: str, record_id: str) -> dict:
        assert collection == "teams"
        return dict(teams[record_id])

    result = engine.shape(members, QueryParams(load="team=teamId:teams"), fetch)

    assert result[0]["team"] == {"_id": "t1", "name": "Rocket"}
    assert result[1]["team"] is None


def test_load_strips_password_hash_from_identity_records(engine: QueryEngine):
    def fetch(collection: str, record_id: str) -> dict:
        return {"_id": record_id, "email": "a@b.c", "hashedPassword": "secret"}

    result = engine.shape([{"_ownerId": "u1"}], QueryParams(load="author=_ownerId:users"), fetch)

    assert result[0]["author"] == {"_id": "u1", "email": "a@b.c"}


def test_load_dangling_id_propagates_not_found(engine: QueryEngine):
    def fetch(collection: str, record_id: str) -> dict:
        raise NotFoundError(f"Entry does not exist: {record_id}")

    with pytest.raises(NotFoundError):
        engine.shape([{"teamId": "gone"}], QueryParams(load="team=teamId:teams"), fetch)


def test_load_rejects_malformed_specifier(engine: QueryEngine):
    with pytest.raises(RequestError):
        engine.shape([{"a": 1}], QueryParams(load="team:teams"), lambda c, i: {})
