"""Unit tests for the DataService: request orchestration across store, queries and rules."""

import pytest

from docstore.application.services import DataService, QueryEngine, RuleEngine
from docstore.domain.entities import Action, DataRequest, Principal, QueryParams, RuleSet
from docstore.domain.exceptions import (
    AuthorizationError,
    CredentialError,
    NotFoundError,
    RequestError,
)
from docstore.infrastructure.storage.memory_record_store import InMemoryRecordStore

ALICE = Principal(id="alice", attributes={"email": "alice@example.com"})
BOB = Principal(id="bob", attributes={"email": "bob@example.com"})

RULES = {
    "diaries": {".read": ["Owner"]},
    "games": {"*": {"notes": {".read": ["Owner"], ".update": ["Owner"]}}},
}


def _service(rules: dict | None = None) -> DataService:
    store = InMemoryRecordStore({
        "games": {
            "g1": {"_ownerId": "alice", "title": "Chess", "players": 2, "notes": "mine"},
            "g2": {"_ownerId": "bob", "title": "Poker", "players": 6},
            "g3": {"_ownerId": "bob", "title": "Bridge", "players": 4},
        },
    })
    protected = InMemoryRecordStore({
        "users": {
            "alice": {"email": "alice@example.com", "hashedPassword": "h1"},
            "bob": {"email": "bob@example.com", "hashedPassword": "h2"},
        },
    })
    return DataService(
        store=store,
        protected_store=protected,
        rule_engine=RuleEngine(RuleSet.from_dict(RULES if rules is None else rules), store),
        query_engine=QueryEngine(),
    )


@pytest.fixture
def service() -> DataService:
    return _service()


def _read(service: DataService, principal=None, collection="games", record_id=None, **query):
    return service.execute(DataRequest(
        action=Action.READ,
        collection=collection,
        record_id=record_id,
        principal=principal,
        query=QueryParams(**query),
    ))


# ── Reads ────────────────────────────────────────────────────────────


def test_list_collections(service: DataService):
    assert _read(service, collection=None) == ["games"]


def test_read_missing_collection(service: DataService):
    with pytest.raises(NotFoundError):
        _read(service, collection="nope")


def test_read_single_record_and_field_redaction(service: DataService):
    as_owner = _read(service, ALICE, record_id="g1")
    as_other = _read(service, BOB, record_id="g1")

    assert as_owner["notes"] == "mine"
    assert "notes" not in as_other
    assert as_other["title"] == "Chess"


def test_read_query_pipeline(service: DataService):
    result = _read(service, where="players>2", sort_by="players desc", select="title")
    assert result == [{"title": "Poker"}, {"title": "Bridge"}]


def test_where_takes_precedence_over_record_id(service: DataService):
    result = _read(service, record_id="g1", where='title="Poker"')
    assert [r["_id"] for r in result] == ["g2"]


def test_count(service: DataService):
    assert _read(service, count="true") == 3
    assert _read(service, where="players<5", count="1") == 2


def test_select_keeps_redaction(service: DataService):
    result = _read(service, BOB, record_id="g1", select="title,notes")
    assert result == {"title": "Chess"}


def test_load_identity_record_without_password_hash(service: DataService):
    result = _read(service, record_id="g2", load="owner=_ownerId:users")
    assert result["owner"] == {"_id": "bob", "email": "bob@example.com"}


def test_list_read_is_gated_per_record():
    service = _service({"games": {".read": ["Owner"]}})
    with pytest.raises(AuthorizationError):
        _read(service)
    with pytest.raises(CredentialError):
        _read(service, ALICE)
    assert [r["_id"] for r in _read(service, ALICE, where='_ownerId="alice"')] == ["g1"]


# ── Writes ───────────────────────────────────────────────────────────


def test_create_sets_owner_and_strips_system_fields(service: DataService):
    created = service.execute(DataRequest(
        action=Action.CREATE, collection="games", principal=ALICE,
        payload={"title": "Go", "_ownerId": "bob", "_id": "forced"},
    ))

    assert created["_ownerId"] == "alice"
    assert created["_id"] != "forced"
    assert _read(service, record_id=created["_id"])["title"] == "Go"


def test_create_with_id_is_rejected(service: DataService):
    with pytest.raises(RequestError, match="Use PUT to update records"):
        service.execute(DataRequest(action=Action.CREATE, collection="games", record_id="x", principal=ALICE))


def test_create_requires_authentication(service: DataService):
    with pytest.raises(AuthorizationError):
        service.execute(DataRequest(action=Action.CREATE, collection="games", payload={"title": "x"}))


def test_update_requires_id(service: DataService):
    with pytest.raises(RequestError, match="Missing entry ID"):
        service.execute(DataRequest(action=Action.UPDATE, collection="games", principal=ALICE, payload={}))


def test_update_missing_record(service: DataService):
    with pytest.raises(NotFoundError):
        service.execute(DataRequest(
            action=Action.UPDATE, collection="games", record_id="zzz", principal=ALICE, payload={},
        ))


def test_replace_and_merge(service: DataService):
    replaced = service.execute(DataRequest(
        action=Action.UPDATE, collection="games", record_id="g1",
        principal=ALICE, payload={"title": "Chess960"},
    ))
    assert replaced["title"] == "Chess960"
    assert "players" not in replaced
    assert replaced["_ownerId"] == "alice"

    merged = service.execute(DataRequest(
        action=Action.UPDATE, collection="games", record_id="g1",
        principal=ALICE, payload={"players": 2}, merge=True,
    ))
    assert merged["title"] == "Chess960"
    assert merged["players"] == 2


def test_ownership_enforcement_and_admin_override(service: DataService):
    request = DataRequest(
        action=Action.UPDATE, collection="games", record_id="g1",
        principal=BOB, payload={"title": "Hijacked"},
    )
    with pytest.raises(CredentialError):
        service.execute(request)

    request.admin_override = True
    assert service.execute(request)["title"] == "Hijacked"


def test_denied_write_fields_are_dropped(service: DataService):
    updated = service.execute(DataRequest(
        action=Action.UPDATE, collection="games", record_id="g2", principal=ALICE,
        payload={"title": "Poker Night", "notes": "sneaky"}, merge=True, admin_override=True,
    ))
    assert updated["title"] == "Poker Night"
    assert "notes" not in updated


def test_delete(service: DataService):
    with pytest.raises(CredentialError):
        service.execute(DataRequest(action=Action.DELETE, collection="games", record_id="g1", principal=BOB))

    result = service.execute(DataRequest(action=Action.DELETE, collection="games", record_id="g1", principal=ALICE))
    assert "_deletedOn" in result
    with pytest.raises(NotFoundError):
        _read(service, record_id="g1")


# ── End to end ───────────────────────────────────────────────────────


def test_owner_only_read_end_to_end(service: DataService):
    created = service.execute(DataRequest(
        action=Action.CREATE, collection="diaries", principal=ALICE,
        payload={"entry": "Dear diary"},
    ))
    assert created["_ownerId"] == "alice"

    with pytest.raises(CredentialError):
        _read(service, BOB, collection="diaries", record_id=created["_id"])

    own = _read(service, ALICE, collection="diaries", record_id=created["_id"])
    assert own == created
