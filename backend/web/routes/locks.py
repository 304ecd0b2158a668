"""
Admin routes for per-student feature locks.

Permissions: admin only (enforced by the guard middleware for `/api/admin`).
Locks can be set for any student id that exists; unknown features are a 400.
"""
from __future__ import annotations

import logging
from typing import Dict

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from backend.identity_access.locks import FEATURES
from backend.records.errors import NotFound
from backend.records.store import Collection
from backend.web.responses import _json_private, _private_error, get_context

locks_router = APIRouter(tags=["Locks"])
logger = logging.getLogger("portal.web.locks")


class LocksUpdate(BaseModel):
    locks: Dict[str, bool] = Field(default_factory=dict)


def _ensure_student(request: Request, student_id: str) -> None:
    if get_context(request).records.get_by_id(Collection.STUDENTS, student_id) is None:
        raise NotFound(f"students:{student_id}")


@locks_router.get("/api/admin/locks/{student_id}")
async def get_locks(request: Request, student_id: str):
    _ensure_student(request, student_id)
    return _json_private({"student_id": student_id, "locks": get_context(request).locks.locks_for(student_id)})


@locks_router.put("/api/admin/locks/{student_id}")
async def put_locks(request: Request, student_id: str, payload: LocksUpdate):
    _ensure_student(request, student_id)
    unknown = sorted(f for f in payload.locks if f not in FEATURES)
    if unknown:
        return _private_error("bad_request", status_code=400, detail={"unknown_features": unknown})
    registry = get_context(request).locks
    for feature, locked in payload.locks.items():
        registry.set_locked(student_id, feature, locked)
    return _json_private({"student_id": student_id, "locks": registry.locks_for(student_id)})


@locks_router.post("/api/admin/locks/{student_id}/{feature}/toggle")
async def toggle_lock(request: Request, student_id: str, feature: str):
    _ensure_student(request, student_id)
    if feature not in FEATURES:
        return _private_error("bad_request", status_code=400, detail="unknown_feature")
    locked = get_context(request).locks.toggle(student_id, feature)
    return _json_private({"student_id": student_id, "feature": feature, "locked": locked})
