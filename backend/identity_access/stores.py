"""
Session storage: per-browser session areas and the session identity store.

Why: Keep the authenticated identity server-side and opaque to the client.
The cookie carries only a random area id; the identity itself lives in that
area under a fixed key, the way a browser tab keeps it in session storage.

Security: Identities are stored without credential fields. Area ids come from
`secrets.token_urlsafe` and are never derived from user data.
"""
from __future__ import annotations

import json
import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from backend.identity_access.domain import sanitize_identity
from backend.storage.keys import SESSION_USER_KEY
from backend.storage.memory import MemoryStorage
from backend.storage.ports import KeyValueStorage

logger = logging.getLogger("portal.identity_access")


def _now() -> int:
    return int(time.time())


class SessionStore:
    """Holds the single authenticated identity of one session area."""

    def __init__(self, area: KeyValueStorage) -> None:
        self._area = area

    def load(self) -> Optional[dict]:
        raw = self._area.get_item(SESSION_USER_KEY)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            data = None
        if not isinstance(data, dict):
            logger.warning("Corrupt session identity cleared")
            self._area.remove_item(SESSION_USER_KEY)
            return None
        return data

    def save(self, identity: dict) -> dict:
        clean = sanitize_identity(identity)
        self._area.set_item(SESSION_USER_KEY, json.dumps(clean, ensure_ascii=False))
        return clean

    def update(self, **fields: Any) -> dict:
        """Merge client-side changes into the current identity."""
        current = self.load()
        if current is None:
            raise LookupError("no_session")
        current.update(fields)
        return self.save(current)

    def clear(self) -> None:
        self._area.remove_item(SESSION_USER_KEY)


@dataclass
class AreaRecord:
    session_id: str
    area: MemoryStorage = field(default_factory=MemoryStorage)
    last_seen: int = field(default_factory=_now)


class SessionAreas:
    """In-memory registry of session areas keyed by opaque session id.

    Areas idle longer than `idle_ttl_seconds` are dropped when looked up and
    swept whenever a new area is created, which mirrors session storage
    disappearing with its tab.
    """

    def __init__(self, idle_ttl_seconds: int = 8 * 3600) -> None:
        self._data: Dict[str, AreaRecord] = {}
        self._ttl = int(idle_ttl_seconds)

    def _expired(self, rec: AreaRecord, now: int) -> bool:
        return self._ttl > 0 and rec.last_seen + self._ttl < now

    def sweep(self) -> int:
        """Drop every idle area; returns how many were removed."""
        now = _now()
        stale = [sid for sid, rec in self._data.items() if self._expired(rec, now)]
        for sid in stale:
            del self._data[sid]
        if stale:
            logger.info("Expired session areas removed count=%d", len(stale))
        return len(stale)

    def create(self) -> AreaRecord:
        self.sweep()
        sid = secrets.token_urlsafe(24)
        rec = AreaRecord(session_id=sid, last_seen=_now())
        self._data[sid] = rec
        return rec

    def get(self, session_id: str | None) -> Optional[AreaRecord]:
        if not session_id:
            return None
        rec = self._data.get(session_id)
        if not rec:
            return None
        now = _now()
        if self._expired(rec, now):
            self._data.pop(session_id, None)
            return None
        rec.last_seen = now
        return rec

    def discard(self, session_id: str | None) -> None:
        if session_id:
            self._data.pop(session_id, None)

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


__all__ = ["SessionStore", "SessionAreas", "AreaRecord"]
