"""
Configuration and startup security checks for the school portal.

Why: A school portal holds personal data of minors. This module provides a
single guard that enforces minimal production safety constraints without
burdening local development.

Permissions: The caller needs no special privileges. The functions read
environment variables and `ensure_secure_config_on_startup` raises
`SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import logging
import os

from backend.storage.config import get_storage_backend

PROD_LIKE_ENVS = frozenset({"prod", "production", "stage", "staging"})
SESSION_IDLE_TTL_DEFAULT = 8 * 3600


def _is_prod_like(env: str) -> bool:
    return (env or "").lower() in PROD_LIKE_ENVS


def _flag(name: str, default: str = "false") -> bool:
    return (os.getenv(name, default) or "").strip().lower() == "true"


def portal_env() -> str:
    return (os.getenv("PORTAL_ENV", "dev") or "dev").strip().lower()


def seed_fixtures_enabled() -> bool:
    """Seed demo identities on first start (default on outside prod-like envs)."""
    default = "false" if _is_prod_like(portal_env()) else "true"
    return _flag("SEED_FIXTURES", default)


def session_idle_ttl_seconds() -> int:
    raw = (os.getenv("SESSION_IDLE_TTL_SECONDS") or "").strip()
    if not raw:
        return SESSION_IDLE_TTL_DEFAULT
    try:
        value = int(raw)
    except ValueError:
        logging.getLogger("portal.web").warning("Invalid SESSION_IDLE_TTL_SECONDS=%r; using default", raw)
        return SESSION_IDLE_TTL_DEFAULT
    return max(0, value)


def trust_proxy() -> bool:
    return _flag("PORTAL_TRUST_PROXY")


def configure_logging() -> None:
    """Apply LOG_LEVEL to the root logger (default INFO)."""
    level_name = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(level)


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Intent: Abort process startup when obviously insecure settings are detected
    in production/staging. Development remains permissive for convenience.

    Checks:
    - STORAGE_BACKEND must be durable (memory loses all records on restart).
    - DATABASE_URL must not explicitly disable TLS.
    - Demo fixtures with published passwords must not be seeded.
    """
    if not _is_prod_like(portal_env()):
        return  # dev/test remain permissive

    if get_storage_backend() == "memory":
        raise SystemExit(
            "Refusing to start: STORAGE_BACKEND=memory is not allowed in production/staging."
        )

    dsn = os.getenv("DATABASE_URL", "")
    if "sslmode=disable" in dsn:
        raise SystemExit(
            "Refusing to start: DATABASE_URL contains sslmode=disable in production. Use sslmode=require or verify TLS."
        )

    if _flag("SEED_FIXTURES"):
        raise SystemExit(
            "Refusing to start: SEED_FIXTURES=true would create demo accounts with known passwords in production."
        )


__all__ = [
    "PROD_LIKE_ENVS",
    "portal_env",
    "seed_fixtures_enabled",
    "session_idle_ttl_seconds",
    "trust_proxy",
    "configure_logging",
    "ensure_secure_config_on_startup",
]
