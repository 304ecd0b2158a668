"""
Database-backed key-value storage for production use (Postgres).

Why: The JSON file store is not shared across instances. This store persists
the same key -> JSON-text pairs in a Postgres table so every app instance sees
one origin-wide storage area.

Schema (created by migrations, not by the app):

    create table public.portal_storage (
        key   text primary key,
        value text not null,
        updated_at timestamptz not null default now()
    );

Note: This module uses psycopg3. It is imported only when enabled via
`STORAGE_BACKEND=db`. Tests run against a fake driver.
"""
from __future__ import annotations

import logging
import os
import re

from backend.storage.ports import StorageUnavailable

try:
    import psycopg
    from psycopg import sql as psycopg_sql
    HAVE_PSYCOPG = True
except ImportError:  # pragma: no cover - optional dependency in dev
    psycopg = None  # type: ignore
    psycopg_sql = None  # type: ignore
    HAVE_PSYCOPG = False

logger = logging.getLogger("portal.storage")

_TABLE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}(?:\.[A-Za-z_][A-Za-z0-9_]{0,62})?$")


class DBStorage:
    """Postgres-backed key-value storage.

    Parameters
    ----------
    dsn:
        Psycopg3 connection string.
    table:
        Fully qualified table name. Defaults to `public.portal_storage`.
    """

    def __init__(self, dsn: str | None = None, table: str = "public.portal_storage") -> None:
        if psycopg is None:
            raise RuntimeError("psycopg3 is required for DBStorage")
        self._dsn = dsn or os.getenv("DATABASE_URL", "")
        if not self._dsn:
            raise RuntimeError("No database DSN provided for DBStorage")
        if not _TABLE_RE.match(table or ""):
            raise ValueError("Invalid table name")
        self._table = table

    def _schema_and_name(self) -> tuple[str, str]:
        if "." in self._table:
            schema, name = self._table.split(".", 1)
        else:
            schema, name = "public", self._table
        return schema, name

    def _stmt(self, template: str):
        """Compose `template` with the table identifier.

        `{}` marks the table. Uses psycopg.sql when present; the plain format
        path is only safe because the table name was validated in __init__.
        """
        if psycopg_sql is not None:
            schema, name = self._schema_and_name()
            return psycopg_sql.SQL(template).format(psycopg_sql.Identifier(schema, name))
        return template.format(self._table)

    def _execute(self, template: str, params: tuple = (), *, fetch: str | None = None, autocommit: bool = False):
        try:
            with psycopg.connect(self._dsn, autocommit=autocommit) as conn:
                with conn.cursor() as cur:
                    cur.execute(self._stmt(template), params)
                    if fetch == "one":
                        return cur.fetchone()
                    if fetch == "all":
                        return cur.fetchall()
                    return None
        except Exception as exc:
            logger.warning("Storage query failed table=%s err=%s", self._table, exc.__class__.__name__)
            raise StorageUnavailable(f"database storage unavailable: {exc.__class__.__name__}") from exc

    def get_item(self, key: str) -> str | None:
        row = self._execute("select value from {} where key = %s", (key,), fetch="one")
        return str(row[0]) if row else None

    def set_item(self, key: str, value: str) -> None:
        self._execute(
            "insert into {} (key, value) values (%s, %s) "
            "on conflict (key) do update set value = excluded.value, updated_at = now()",
            (key, str(value)),
            autocommit=True,
        )

    def remove_item(self, key: str) -> None:
        self._execute("delete from {} where key = %s", (key,), autocommit=True)

    def keys(self) -> list[str]:
        rows = self._execute("select key from {} order by key", (), fetch="all") or []
        return [str(r[0]) for r in rows]

    def clear(self) -> None:
        self._execute("delete from {}", (), autocommit=True)


__all__ = ["DBStorage", "HAVE_PSYCOPG"]
