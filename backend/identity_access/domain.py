"""
Identity domain constants and simple helpers.

Why:
- Centralize allowed roles and landing pages to avoid drift between the
  guard, the navigation and the auth routes.
- Keep terms aligned with the glossary (Identity, Session) and used
  consistently across modules.
"""

from __future__ import annotations

from typing import Any, Mapping

# Keep roles minimal and explicit. Immutable to prevent accidental mutation.
ALLOWED_ROLES = frozenset({"student", "teacher", "admin"})

LOGIN_PATH = "/login"

_HOME_BY_ROLE = {
    "admin": "/admin/dashboard",
    "teacher": "/teacher/dashboard",
}
STUDENT_HOME = "/dashboard"

# Fields that must never leave the record store with an identity.
SECRET_FIELDS = ("password", "password_hash")


def home_path_for(role: str | None) -> str:
    """Return the default landing page for `role` (students and unknowns share one)."""
    return _HOME_BY_ROLE.get(str(role or "").lower(), STUDENT_HOME)


def sanitize_identity(record: Mapping[str, Any]) -> dict:
    """Return a copy of `record` without credential fields."""
    return {k: v for k, v in record.items() if k not in SECRET_FIELDS}


__all__ = ["ALLOWED_ROLES", "LOGIN_PATH", "STUDENT_HOME", "SECRET_FIELDS", "home_path_for", "sanitize_identity"]
