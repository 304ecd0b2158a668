"""
Password hashing for portal identities.

Salted PBKDF2-SHA256 via passlib's CryptContext. Hash strings are
self-describing (`$pbkdf2-sha256$<rounds>$<salt>$<digest>`), so the round count
can be raised later and old hashes flagged with `needs_update`.
"""
from __future__ import annotations

import hmac
from typing import Any, Mapping

from passlib.context import CryptContext


class PasswordHasher:
    def __init__(self, rounds: int | None = None) -> None:
        settings: dict[str, Any] = {"schemes": ["pbkdf2_sha256"], "deprecated": "auto"}
        if rounds:
            settings["pbkdf2_sha256__rounds"] = int(rounds)
        self._ctx = CryptContext(**settings)

    def hash(self, password: str) -> str:
        return self._ctx.hash(str(password))

    def verify(self, password: str, password_hash: str) -> bool:
        if not password_hash:
            return False
        try:
            return bool(self._ctx.verify(str(password), password_hash))
        except (ValueError, TypeError):
            # Unknown or malformed hash format.
            return False

    def needs_update(self, password_hash: str) -> bool:
        try:
            return bool(self._ctx.needs_update(password_hash))
        except (ValueError, TypeError):
            return True

    @staticmethod
    def matches_legacy(password: str, stored_plaintext: Any) -> bool:
        """Constant-time comparison for records that predate hashing."""
        if not isinstance(stored_plaintext, str) or not stored_plaintext:
            return False
        return hmac.compare_digest(str(password).encode("utf-8"), stored_plaintext.encode("utf-8"))

    def hash_identity(self, record: Mapping[str, Any]) -> dict:
        """Return a copy with a plaintext `password` replaced by `password_hash`."""
        out = dict(record)
        plaintext = out.pop("password", None)
        if plaintext:
            out["password_hash"] = self.hash(plaintext)
        return out


__all__ = ["PasswordHasher"]
