"""
Auth service: validate credentials against the identity collections.

Behavior:
    - Looks up admins, teachers and students (in that order) by exact id.
    - Login succeeds iff exactly one record matches id and password.
    - Returns a sanitized identity (no password fields) with `role` filled in
      from the collection when the record lacks a known role.
    - Records that still carry a plaintext `password` are compared in
      constant time and upgraded to a salted hash on first successful login.

Logging: failed attempts are logged with the id tail only.
"""
from __future__ import annotations

import logging
from typing import Any, List, Tuple

from backend.identity_access.domain import ALLOWED_ROLES, sanitize_identity
from backend.identity_access.passwords import PasswordHasher
from backend.identity_access.stores import SessionStore
from backend.records.errors import InvalidCredentials
from backend.records.store import IDENTITY_COLLECTIONS, Collection, RecordStore

logger = logging.getLogger("portal.identity_access")

_ROLE_BY_COLLECTION = {
    Collection.ADMINS: "admin",
    Collection.TEACHERS: "teacher",
    Collection.STUDENTS: "student",
}


def _tail(value: str) -> str:
    return str(value or "")[-3:]


class AuthService:
    def __init__(self, records: RecordStore, hasher: PasswordHasher | None = None) -> None:
        self._records = records
        self._hasher = hasher or PasswordHasher()

    @property
    def hasher(self) -> PasswordHasher:
        return self._hasher

    def _matches(self, collection: Collection, record: dict, password: str) -> bool:
        stored_hash = record.get("password_hash")
        if stored_hash:
            ok = self._hasher.verify(password, stored_hash)
            if ok and self._hasher.needs_update(stored_hash):
                self._rehash(collection, record, password)
            return ok
        if self._hasher.matches_legacy(password, record.get("password")):
            self._rehash(collection, record, password)
            return True
        return False

    def _rehash(self, collection: Collection, record: dict, password: str) -> None:
        upgraded = dict(record)
        upgraded.pop("password", None)
        upgraded["password_hash"] = self._hasher.hash(password)
        if self._records.update(collection, upgraded):
            logger.info("Upgraded password hash collection=%s id=...%s", collection.value, _tail(record.get("id")))

    def authenticate(self, user_id: str, password: str) -> dict:
        """Return the sanitized identity for valid credentials.

        Raises InvalidCredentials otherwise (including an ambiguous match
        across collections).
        """
        uid = str(user_id or "").strip()
        if not uid or not password:
            raise InvalidCredentials()
        matches: List[Tuple[Collection, dict]] = []
        for collection in IDENTITY_COLLECTIONS:
            record = self._records.get_by_id(collection, uid)
            if record is not None and self._matches(collection, record, password):
                matches.append((collection, record))
        if len(matches) != 1:
            if len(matches) > 1:
                logger.error("Ambiguous identity id=...%s collections=%d", _tail(uid), len(matches))
            else:
                logger.info("Login failed id=...%s", _tail(uid))
            raise InvalidCredentials()
        collection, record = matches[0]
        identity = sanitize_identity(record)
        if str(identity.get("role") or "").lower() not in ALLOWED_ROLES:
            identity["role"] = _ROLE_BY_COLLECTION[collection]
        return identity

    def login(self, session: SessionStore, user_id: str, password: str) -> dict:
        identity = self.authenticate(user_id, password)
        saved = session.save(identity)
        logger.info("Login ok id=...%s role=%s", _tail(saved.get("id")), saved.get("role"))
        return saved

    def logout(self, session: SessionStore) -> None:
        session.clear()

    def hash_identity(self, record: dict[str, Any]) -> dict:
        return self._hasher.hash_identity(record)


__all__ = ["AuthService", "InvalidCredentials"]
