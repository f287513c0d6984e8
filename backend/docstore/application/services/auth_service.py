"""Auth service — registration, login, sessions and principal resolution.

Users and sessions live in the protected store, which the generic data
path never exposes. A session's access token is the keyed hash of the
session id.
"""

import logging
from typing import Any

from docstore.application.interfaces import RecordStore
from docstore.domain.entities import ID_FIELD, PASSWORD_HASH_FIELD, Principal, Record
from docstore.domain.exceptions import (
    AuthorizationError,
    ConflictError,
    CredentialError,
    NotFoundError,
    RequestError,
)
from docstore.infrastructure.security.password_hasher import PasswordHasher

logger = logging.getLogger(__name__)

SESSIONS_COLLECTION = "sessions"
ACCESS_TOKEN_FIELD = "accessToken"
PASSWORD_FIELD = "password"


class AuthService:
    """Identity operations over the protected store."""

    def __init__(
        self,
        protected_store: RecordStore,
        hasher: PasswordHasher,
        identity_field: str = "email",
        users_collection: str = "users",
    ):
        self._store = protected_store
        self._hasher = hasher
        self._identity = identity_field
        self._users = users_collection

    # ── Identity operations ─────────────────────────────────────────

    def register(self, body: dict[str, Any]) -> Record:
        identity = body.get(self._identity)
        password = body.get(PASSWORD_FIELD)
        if identity in (None, "") or password in (None, ""):
            raise RequestError("Missing fields")

        if self._find(self._users, {self._identity: identity}):
            raise ConflictError(f"A user with the same {self._identity} already exists")

        new_user = {key: value for key, value in body.items() if key != PASSWORD_FIELD}
        new_user[PASSWORD_HASH_FIELD] = self._hasher.hash(str(password))
        user = self._store.add(self._users, new_user)
        logger.info("Registered user %s", identity)
        return self._with_session(user)

    def login(self, body: dict[str, Any]) -> Record:
        matches = self._find(self._users, {self._identity: body.get(self._identity)})
        password = body.get(PASSWORD_FIELD)
        if len(matches) != 1 or password is None:
            raise CredentialError("Login or password don't match")
        user = matches[0]
        if not self._hasher.verify(str(password), user.get(PASSWORD_HASH_FIELD, "")):
            raise CredentialError("Login or password don't match")
        logger.info("Logged in user %s", user.get(self._identity))
        return self._with_session(user)

    def logout(self, principal: Principal | None, access_token: str | None) -> None:
        """Close the session behind ``access_token``; other sessions of the user stay open."""
        if principal is None or access_token is None:
            raise CredentialError("User session does not exist")
        sessions = self._find(SESSIONS_COLLECTION, {ACCESS_TOKEN_FIELD: access_token, "userId": principal.id})
        for session in sessions:
            self._store.delete(SESSIONS_COLLECTION, session[ID_FIELD])
        logger.info("Closed session for user %s", principal.id)

    @staticmethod
    def me(principal: Principal | None) -> Record:
        if principal is None:
            raise AuthorizationError()
        return principal.as_record()

    def resolve_principal(self, token: str | None) -> Principal | None:
        """Map an access token to its principal; ``None`` means anonymous."""
        if token is None:
            return None
        sessions = self._find(SESSIONS_COLLECTION, {ACCESS_TOKEN_FIELD: token})
        if sessions:
            try:
                user = self._store.get(self._users, str(sessions[0].get("userId")))
            except NotFoundError:
                user = None
            if user is not None:
                logger.debug("Authorized as %s", user.get(self._identity))
                return self._to_principal(user)
        raise CredentialError("Invalid access token")

    # ── Helpers ─────────────────────────────────────────────────────

    def _find(self, collection: str, exact_match: dict[str, Any]) -> list[Record]:
        try:
            return self._store.query(collection, exact_match)
        except NotFoundError:
            return []

    def _with_session(self, user: Record) -> Record:
        session = self._store.add(SESSIONS_COLLECTION, {"userId": user[ID_FIELD]})
        access_token = self._hasher.hash(session[ID_FIELD])
        self._store.set(SESSIONS_COLLECTION, session[ID_FIELD], {**session, ACCESS_TOKEN_FIELD: access_token})

        result = dict(user)
        result.pop(PASSWORD_HASH_FIELD, None)
        result[ACCESS_TOKEN_FIELD] = access_token
        return result

    @staticmethod
    def _to_principal(user: Record) -> Principal:
        attributes = {
            key: value for key, value in user.items()
            if key not in (ID_FIELD, PASSWORD_HASH_FIELD)
        }
        return Principal(id=user[ID_FIELD], attributes=attributes)
