"""
Durable key-value storage backed by a single JSON document on disk.

Why:
    Local development needs data that survives restarts without running
    Postgres. This plays the role of the browser's origin-scoped storage: one
    document per deployment, durable until explicitly cleared.

Behavior:
    - The file maps key -> string value. A missing file reads as empty.
    - Every write rewrites the document through a temp file and `os.replace`,
      so readers never observe a half-written file.
    - Unreadable files (I/O errors, invalid JSON, wrong shape) raise
      `StorageUnavailable`; callers decide whether to reset.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict

from backend.storage.ports import StorageUnavailable

logger = logging.getLogger("portal.storage")


class JsonFileStorage:
    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> Dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StorageUnavailable(f"cannot read {self._path}: {exc.__class__.__name__}") from exc
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StorageUnavailable(f"corrupt storage file {self._path}") from exc
        if not isinstance(data, dict):
            raise StorageUnavailable(f"unexpected storage document in {self._path}")
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, data: Dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".portal-", suffix=".json", dir=str(self._path.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh, ensure_ascii=False)
                os.replace(tmp_name, self._path)
            except BaseException:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
                raise
        except OSError as exc:
            logger.warning("Storage write failed path=%s err=%s", self._path, exc.__class__.__name__)
            raise StorageUnavailable(f"cannot write {self._path}: {exc.__class__.__name__}") from exc

    def get_item(self, key: str) -> str | None:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = str(value)
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def keys(self) -> list[str]:
        return list(self._read().keys())

    def clear(self) -> None:
        self._write({})


__all__ = ["JsonFileStorage"]
