"""
Storage ports used by the record store, lock registry and session areas.

Keep these small and framework-agnostic so tests can supply simple fakes.
The shape follows the browser storage API the portal was first built on:
string keys, string values, whole-value reads and writes.
"""
from __future__ import annotations

from typing import Protocol


class StorageUnavailable(RuntimeError):
    """The persistence medium could not be read or written.

    Backends wrap their driver/I/O errors in this exception so callers only
    have to handle one type.
    """


class KeyValueStorage(Protocol):
    """Minimal string key-value interface.

    Intent:
        Allow the record store to persist JSON blobs without depending on a
        concrete medium (memory, JSON file, Postgres).

    Behavior:
        - `get_item` returns None for absent keys.
        - Writes replace the whole value (no partial updates, last writer wins).
    """

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...

    def clear(self) -> None: ...


__all__ = ["KeyValueStorage", "StorageUnavailable"]
