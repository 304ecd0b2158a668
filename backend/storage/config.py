"""
Centralized storage configuration.

Intent:
    Provide a single source of truth for which key-value backend the portal
    uses and where it keeps its data. Prevents drift between the app factory,
    tooling and tests.

Behavior:
    - STORAGE_BACKEND selects `memory`, `file` (default) or `db`.
    - STORAGE_FILE overrides the JSON document path for the file backend.
    - DATABASE_URL / STORAGE_TABLE configure the db backend.

Permissions:
    Pure configuration; building a db backend does not connect yet.
"""
from __future__ import annotations

import logging
import os

from backend.storage.ports import KeyValueStorage

STORAGE_BACKEND_DEFAULT = "file"
STORAGE_FILE_DEFAULT = ".data/portal_storage.json"
STORAGE_TABLE_DEFAULT = "public.portal_storage"
VALID_BACKENDS = frozenset({"memory", "file", "db"})

logger = logging.getLogger("portal.storage")


def get_storage_backend() -> str:
    """Return the configured backend name (lowercased; unknown -> default)."""
    value = (os.getenv("STORAGE_BACKEND") or STORAGE_BACKEND_DEFAULT).strip().lower()
    if value not in VALID_BACKENDS:
        logger.warning("Unknown STORAGE_BACKEND=%s, using %s", value, STORAGE_BACKEND_DEFAULT)
        return STORAGE_BACKEND_DEFAULT
    return value


def get_storage_file() -> str:
    return (os.getenv("STORAGE_FILE") or STORAGE_FILE_DEFAULT).strip()


def get_storage_table() -> str:
    return (os.getenv("STORAGE_TABLE") or STORAGE_TABLE_DEFAULT).strip()


def build_storage_from_env() -> KeyValueStorage:
    """Instantiate the configured durable storage backend."""
    backend = get_storage_backend()
    if backend == "memory":
        from backend.storage.memory import MemoryStorage

        return MemoryStorage()
    if backend == "db":
        from backend.storage.db_store import DBStorage

        return DBStorage(table=get_storage_table())
    from backend.storage.file_store import JsonFileStorage

    return JsonFileStorage(get_storage_file())


__all__ = [
    "STORAGE_BACKEND_DEFAULT",
    "STORAGE_FILE_DEFAULT",
    "STORAGE_TABLE_DEFAULT",
    "get_storage_backend",
    "get_storage_file",
    "get_storage_table",
    "build_storage_from_env",
]
