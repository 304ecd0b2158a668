"""
Error taxonomy shared by the record store, auth service and web adapters.

Callers handle these locally: the login page shows an inline message, feature
pages fall back to empty data, API routes map them to status codes. Nothing
here is retried.
"""
from __future__ import annotations

from backend.storage.ports import StorageUnavailable


class PortalError(Exception):
    """Base class for portal domain errors."""


class InvalidCredentials(PortalError):
    """No identity matched the given id and password."""


class NotFound(PortalError):
    """An update/delete/lookup referenced an id that does not exist."""


class DuplicateRecord(PortalError, ValueError):
    """A record with the same id already exists in the collection."""


__all__ = ["PortalError", "InvalidCredentials", "NotFound", "DuplicateRecord", "StorageUnavailable"]
