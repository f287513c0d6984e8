"""FastAPI dependency injection — wires infrastructure to the application layer.

All process-wide state (the two stores, the rule set) lives in one
``ServiceContainer`` built at start-up and attached to ``app.state``.
"""

import logging
from dataclasses import dataclass

from fastapi import Depends, Header, Request

from docstore.application.services import AuthService, DataService, QueryEngine, RuleEngine
from docstore.config import Settings
from docstore.domain.entities import Principal
from docstore.infrastructure.security.password_hasher import PasswordHasher
from docstore.infrastructure.storage.memory_record_store import InMemoryRecordStore
from docstore.infrastructure.storage.rule_set_loader import load_rule_set
from docstore.infrastructure.storage.seed_loader import load_seed_directory, load_seed_file

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Everything a request handler needs, constructed once per process."""

    store: InMemoryRecordStore
    protected_store: InMemoryRecordStore
    rule_engine: RuleEngine
    query_engine: QueryEngine
    data_service: DataService
    auth_service: AuthService


def build_container(settings: Settings) -> ServiceContainer:
    """Load seed data and rules, then wire stores, engines and services."""
    store = InMemoryRecordStore(
        load_seed_directory(settings.resolve_path(settings.seed_data_dir)),
        name="store",
    )
    protected_store = InMemoryRecordStore(
        load_seed_file(settings.resolve_path(settings.protected_data_file)),
        name="protected store",
    )
    rule_engine = RuleEngine(load_rule_set(settings.resolve_path(settings.rules_file)), store)
    query_engine = QueryEngine(
        identity_collection=settings.identity_collection,
        default_page_size=settings.default_page_size,
    )

    data_service = DataService(
        store=store,
        protected_store=protected_store,
        rule_engine=rule_engine,
        query_engine=query_engine,
        identity_collection=settings.identity_collection,
    )
    auth_service = AuthService(
        protected_store=protected_store,
        hasher=PasswordHasher(settings.hash_secret),
        identity_field=settings.identity_field,
        users_collection=settings.identity_collection,
    )
    logger.info(
        "Service container ready, collections: %s",
        ", ".join(store.list_collections()) or "-",
    )
    return ServiceContainer(
        store=store,
        protected_store=protected_store,
        rule_engine=rule_engine,
        query_engine=query_engine,
        data_service=data_service,
        auth_service=auth_service,
    )


# ── Request dependencies ────────────────────────────────────────────


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_data_service(container: ServiceContainer = Depends(get_container)) -> DataService:
    return container.data_service


def get_auth_service(container: ServiceContainer = Depends(get_container)) -> AuthService:
    return container.auth_service


def get_access_token(x_authorization: str | None = Header(default=None)) -> str | None:
    return x_authorization


def get_principal(
    access_token: str | None = Depends(get_access_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> Principal | None:
    """Principal behind ``X-Authorization``; ``None`` when the header is absent."""
    return auth_service.resolve_principal(access_token)



def is_admin(request: Request) -> bool:
    """Admin override is signalled by the mere presence of ``X-Admin``."""
    return "x-admin" in request.headers
