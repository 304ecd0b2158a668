"""
Portal context: the explicit replacement for a process-wide session singleton.

Why:
    Routes and middleware need the same record store, lock registry, session
    areas and auth service. Bundling them in one object that is injected via
    `app.state.portal` keeps tests isolated (one fresh context per test) and
    gives the app a clear `initialize()` / `dispose()` lifecycle.

Behavior:
    - `ready` is False until the record store has been initialized. The guard
      middleware answers with the LOADING outcome while it is False.
    - `ensure_ready()` retries initialization lazily, so a storage backend that
      was unavailable at startup is picked up on a later request.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Tuple

from backend.identity_access.auth import AuthService
from backend.identity_access.locks import FeatureLockRegistry
from backend.identity_access.passwords import PasswordHasher
from backend.identity_access.stores import AreaRecord, SessionAreas, SessionStore
from backend.records.api import PortalAPI
from backend.records.errors import StorageUnavailable
from backend.records.fixtures import SEED
from backend.records.store import IDENTITY_COLLECTIONS, RecordStore
from backend.storage.ports import KeyValueStorage

logger = logging.getLogger("portal.web")

_IDENTITY_NAMES = frozenset(c.value for c in IDENTITY_COLLECTIONS)


class PortalContext:
    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        fixtures: Optional[Mapping[str, Any]] = SEED,
        hasher: PasswordHasher | None = None,
        idle_ttl_seconds: int = 8 * 3600,
    ) -> None:
        self.storage = storage
        self.hasher = hasher or PasswordHasher()
        self.records = RecordStore(storage, fixtures, on_seed=self._hash_seed)
        self.locks = FeatureLockRegistry(storage)
        self.sessions = SessionAreas(idle_ttl_seconds=idle_ttl_seconds)
        self.auth = AuthService(self.records, self.hasher)
        self.api = PortalAPI(self.records, storage)
        self.ready = False

    def _hash_seed(self, collection: str, record: dict) -> dict:
        if collection in _IDENTITY_NAMES:
            return self.hasher.hash_identity(record)
        return record

    def initialize(self) -> None:
        """Seed absent collections and mark the context ready. Idempotent."""
        self.records.initialize()
        self.ready = True
        logger.info("Portal context ready")

    def ensure_ready(self) -> bool:
        if self.ready:
            return True
        try:
            self.initialize()
        except StorageUnavailable as exc:
            logger.warning("Portal storage not ready: %s", exc)
        return self.ready

    def dispose(self) -> None:
        """Drop all session areas and mark the context not ready."""
        self.sessions.clear()
        self.ready = False

    # --- sessions ----------------------------------------------------------------

    def session_for(self, session_id: str | None) -> Tuple[Optional[AreaRecord], Optional[dict]]:
        """Return the (area, identity) pair for a cookie value; either may be None."""
        area = self.sessions.get(session_id)
        if area is None:
            return None, None
        return area, SessionStore(area.area).load()

    def new_session(self, previous_id: str | None = None) -> Tuple[AreaRecord, SessionStore]:
        """Create a fresh area for a login; the caller's previous area is dropped."""
        self.sessions.discard(previous_id)
        area = self.sessions.create()
        return area, SessionStore(area.area)


__all__ = ["PortalContext"]
