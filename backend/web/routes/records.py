"""
Record API routes: students, teachers, admins, notices, timetables, classes
and the teacher workflows (classes, attendance, tests and marks).

Permissions:
    The guard middleware enforces the role per path prefix (admin for the
    identity collections, teacher for `/api/teacher`). Notice writes are
    checked here: admins and teachers may post; a teacher may only delete
    notices they created. Teachers may only mark attendance or enter marks
    for students in their own grade levels, and only edit their own tests.

Security:
    Passwords are hashed before a record is stored and credential fields are
    never returned. New identities must use an id that is free in every
    identity collection so a login can never match twice.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Body, Request
from pydantic import BaseModel, ConfigDict, Field, field_validator

from backend.identity_access.domain import sanitize_identity
from backend.records.errors import DuplicateRecord, NotFound
from backend.records.store import IDENTITY_COLLECTIONS, Collection, normalize_fields
from backend.web.responses import _json_private, _private_error, _require_role, get_context

records_router = APIRouter(tags=["Records"])
logger = logging.getLogger("portal.web.records")


# --- Request models ------------------------------------------------------------------


class _IdentityBase(BaseModel):
    # Additional record data (attendance, results, fees, ...) is kept as-is.
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    password: Optional[str] = Field(default=None, min_length=6, max_length=256)
    email: Optional[str] = Field(default=None, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=40)

    @field_validator("name", "email", "phone", mode="before")
    @classmethod
    def _strip_empty(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v if v else None
        return v


class StudentCreate(_IdentityBase):
    id: str = Field(..., min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_-]+$")
    name: str = Field(..., min_length=1, max_length=120)
    password: str = Field(..., min_length=6, max_length=256)
    grade_level: str = Field(..., min_length=1, max_length=32)


class StudentUpdate(_IdentityBase):
    grade_level: Optional[str] = Field(default=None, min_length=1, max_length=32)


class TeacherCreate(_IdentityBase):
    id: str = Field(..., min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_-]+$")
    name: str = Field(..., min_length=1, max_length=120)
    password: str = Field(..., min_length=6, max_length=256)
    subject: Optional[str] = Field(default=None, max_length=100)
    classes: List[str] = Field(default_factory=list)


class TeacherUpdate(_IdentityBase):
    subject: Optional[str] = Field(default=None, max_length=100)
    classes: Optional[List[str]] = None


class NoticeCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=5000)
    priority: Literal["low", "medium", "high"] = "medium"
    target_class: Optional[str] = Field(default=None, max_length=32)

    @field_validator("title", "content")
    @classmethod
    def _strip(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped


class TimetableEntry(BaseModel):
    time: str = Field(..., min_length=1, max_length=32)
    subject: str = Field(..., min_length=1, max_length=100)
    teacher: str = Field(default="-", max_length=120)
    room: str = Field(default="-", max_length=40)


# --- helpers -------------------------------------------------------------------------


def _role_for(collection: Collection) -> str:
    return {Collection.STUDENTS: "student", Collection.TEACHERS: "teacher", Collection.ADMINS: "admin"}[collection]


def _create_identity(request: Request, collection: Collection, payload: BaseModel) -> dict:
    ctx = get_context(request)
    data = payload.model_dump(exclude_none=True)
    data.pop("password_hash", None)
    record_id = data["id"]
    for other in IDENTITY_COLLECTIONS:
        if ctx.records.get_by_id(other, record_id) is not None:
            raise DuplicateRecord(f"{other.value}:{record_id}")
    data["role"] = _role_for(collection)
    stored = ctx.records.add(collection, ctx.auth.hash_identity(data))
    logger.info("Created identity collection=%s id=%s", collection.value, record_id)
    return sanitize_identity(stored)


def _update_identity(request: Request, collection: Collection, record_id: str, payload: BaseModel) -> dict:
    ctx = get_context(request)
    current = ctx.records.get_by_id(collection, record_id)
    if current is None:
        raise NotFound(f"{collection.value}:{record_id}")
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    changes.pop("id", None)
    changes.pop("role", None)
    changes.pop("password_hash", None)
    # legacy aliases ("class", "gradeLevel", ...) must replace the stored canonical value
    changes = normalize_fields(collection, changes)
    merged = {**current, **ctx.auth.hash_identity(changes)}
    if "password" in changes:
        merged.pop("password", None)
    if not ctx.records.update(collection, merged):
        raise NotFound(f"{collection.value}:{record_id}")
    return sanitize_identity(merged)


def _delete_identity(request: Request, collection: Collection, record_id: str):
    ctx = get_context(request)
    if not ctx.records.delete(collection, record_id):
        raise NotFound(f"{collection.value}:{record_id}")
    logger.info("Deleted identity collection=%s id=%s", collection.value, record_id)
    return _json_private({"deleted": record_id})


# --- students ------------------------------------------------------------------------


@records_router.get("/api/students")
async def list_students(request: Request, grade_level: Optional[str] = None):
    ctx = get_context(request)
    if grade_level:
        students = ctx.records.get_students_by_class(grade_level)
    else:
        students = ctx.records.get_all(Collection.STUDENTS)
    return _json_private([sanitize_identity(s) for s in students])


@records_router.post("/api/students")
async def create_student(request: Request, payload: StudentCreate):
    return _json_private(_create_identity(request, Collection.STUDENTS, payload), status_code=201)


@records_router.get("/api/students/{student_id}")
async def get_student(request: Request, student_id: str):
    student = get_context(request).records.get_by_id(Collection.STUDENTS, student_id)
    if student is None:
        raise NotFound(f"students:{student_id}")
    return _json_private(sanitize_identity(student))


@records_router.put("/api/students/{student_id}")
async def update_student(request: Request, student_id: str, payload: StudentUpdate):
    return _json_private(_update_identity(request, Collection.STUDENTS, student_id, payload))


@records_router.delete("/api/students/{student_id}")
async def delete_student(request: Request, student_id: str):
    return _delete_identity(request, Collection.STUDENTS, student_id)


# --- teachers ------------------------------------------------------------------------


@records_router.get("/api/teachers")
async def list_teachers(request: Request):
    teachers = get_context(request).records.get_all(Collection.TEACHERS)
    return _json_private([sanitize_identity(t) for t in teachers])


@records_router.post("/api/teachers")
async def create_teacher(request: Request, payload: TeacherCreate):
    return _json_private(_create_identity(request, Collection.TEACHERS, payload), status_code=201)


@records_router.get("/api/teachers/{teacher_id}")
async def get_teacher(request: Request, teacher_id: str):
    teacher = get_context(request).records.get_by_id(Collection.TEACHERS, teacher_id)
    if teacher is None:
        raise NotFound(f"teachers:{teacher_id}")
    return _json_private(sanitize_identity(teacher))


@records_router.put("/api/teachers/{teacher_id}")
async def update_teacher(request: Request, teacher_id: str, payload: TeacherUpdate):
    return _json_private(_update_identity(request, Collection.TEACHERS, teacher_id, payload))


@records_router.delete("/api/teachers/{teacher_id}")
async def delete_teacher(request: Request, teacher_id: str):
    return _delete_identity(request, Collection.TEACHERS, teacher_id)


@records_router.get("/api/admins")
async def list_admins(request: Request):
    admins = get_context(request).records.get_all(Collection.ADMINS)
    return _json_private([sanitize_identity(a) for a in admins])


# --- teacher -------------------------------------------------------------------------


@records_router.get("/api/teacher/classes")
async def teacher_classes(request: Request):
    user, error = _require_role(request, "teacher")
    if error:
        return error
    return _json_private(await get_context(request).api.get_teacher_classes(user["id"]))


# --- notices -------------------------------------------------------------------------


@records_router.get("/api/notices")
async def list_notices(request: Request):
    return _json_private(await get_context(request).api.get_notices())


@records_router.post("/api/notices")
async def create_notice(request: Request, payload: NoticeCreate):
    user, error = _require_role(request, "admin", "teacher")
    if error:
        return error
    notice = await get_context(request).api.add_notice(
        payload.title,
        payload.content,
        priority=payload.priority,
        created_by=user.get("id"),
        target_class=payload.target_class,
    )
    logger.info("Notice created id=%s by_role=%s", notice["id"], user.get("role"))
    return _json_private(notice, status_code=201)


@records_router.delete("/api/notices/{notice_id}")
async def delete_notice(request: Request, notice_id: str):
    user, error = _require_role(request, "admin", "teacher")
    if error:
        return error
    ctx = get_context(request)
    notice = ctx.records.get_by_id(Collection.NOTICES, notice_id)
    if notice is None:
        raise NotFound(f"notices:{notice_id}")
    if user.get("role") == "teacher" and notice.get("created_by") != user.get("id"):
        return _private_error("forbidden", status_code=403)
    await ctx.api.delete_notice(notice["id"])
    return _json_private({"deleted": notice["id"]})


# --- timetables ----------------------------------------------------------------------


@records_router.get("/api/timetables/{grade_level}")
async def get_timetable(request: Request, grade_level: str):
    try:
        week = await get_context(request).api.get_timetable(grade_level)
    except ValueError:
        return _private_error("bad_request", status_code=400)
    return _json_private(week)


@records_router.put("/api/admin/timetables/{grade_level}")
async def save_timetable(request: Request, grade_level: str, payload: Dict[str, List[TimetableEntry]] = Body(...)):
    week: Dict[str, Any] = {day: [e.model_dump() for e in entries] for day, entries in payload.items()}
    try:
        saved = await get_context(request).api.save_timetable(grade_level, week)
    except ValueError as exc:
        return _private_error("bad_request", status_code=400, detail=str(exc))
    return _json_private(saved)


# --- teacher attendance, tests and marks ---------------------------------------------


class AttendanceMark(BaseModel):
    date: str = Field(..., min_length=8, max_length=10)
    # student id -> Present / Absent / Leave
    records: Dict[str, str] = Field(..., min_length=1)


class TestCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    subject: str = Field(..., min_length=1, max_length=100)
    date: str = Field(..., min_length=8, max_length=10)
    total_marks: int = Field(..., gt=0, le=1000)
    class_name: Optional[str] = Field(default=None, max_length=32)
    section: Optional[str] = Field(default=None, max_length=16)
    marks: Dict[str, int] = Field(default_factory=dict)


class MarksUpdate(BaseModel):
    marks: Dict[str, int] = Field(..., min_length=1)


def _teacher_grades(request: Request, teacher_id: str) -> set[str]:
    teacher = get_context(request).records.get_by_id(Collection.TEACHERS, teacher_id) or {}
    return set(teacher.get("classes") or [])


def _outside_classes(request: Request, teacher_id: str, student_ids) -> bool:
    ctx = get_context(request)
    grades = _teacher_grades(request, teacher_id)
    for student_id in student_ids:
        student = ctx.records.get_by_id(Collection.STUDENTS, student_id)
        if student is None:
            raise NotFound(f"students:{student_id}")
        if student.get("grade_level") not in grades:
            return True
    return False


@records_router.post("/api/teacher/attendance")
async def mark_attendance(request: Request, payload: AttendanceMark):
    user, error = _require_role(request, "teacher")
    if error:
        return error
    if _outside_classes(request, user["id"], payload.records):
        return _private_error("forbidden", status_code=403)
    api = get_context(request).api
    try:
        for student_id, status in payload.records.items():
            await api.mark_attendance(student_id, payload.date, status)
    except ValueError as exc:
        return _private_error("bad_request", status_code=400, detail=str(exc))
    logger.info("Attendance marked date=%s count=%d by=%s", payload.date, len(payload.records), user["id"])
    return _json_private({"date": payload.date, "updated": len(payload.records)})


@records_router.get("/api/teacher/tests")
async def list_own_tests(request: Request):
    user, error = _require_role(request, "teacher")
    if error:
        return error
    return _json_private(await get_context(request).api.list_tests(teacher_id=user["id"]))


@records_router.post("/api/teacher/tests")
async def create_test(request: Request, payload: TestCreate):
    user, error = _require_role(request, "teacher")
    if error:
        return error
    if _outside_classes(request, user["id"], payload.marks):
        return _private_error("forbidden", status_code=403)
    try:
        test = await get_context(request).api.add_test(
            payload.name,
            payload.subject,
            payload.date,
            payload.total_marks,
            teacher_id=user["id"],
            class_name=payload.class_name,
            section=payload.section,
            marks=payload.marks,
        )
    except ValueError as exc:
        return _private_error("bad_request", status_code=400, detail=str(exc))
    return _json_private(test, status_code=201)


@records_router.post("/api/teacher/tests/{test_id}/marks")
async def update_marks(request: Request, test_id: str, payload: MarksUpdate):
    user, error = _require_role(request, "teacher")
    if error:
        return error
    api = get_context(request).api
    test = await api.get_test(test_id)
    if test.get("teacher_id") != user["id"] or _outside_classes(request, user["id"], payload.marks):
        return _private_error("forbidden", status_code=403)
    try:
        updated = await api.update_marks(test["id"], payload.marks)
    except ValueError as exc:
        return _private_error("bad_request", status_code=400, detail=str(exc))
    return _json_private(updated)


# --- classes (admin) -----------------------------------------------------------------


class ClassCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=32)
    section: str = Field(..., min_length=1, max_length=16)
    class_teacher_id: Optional[str] = Field(default=None, max_length=64)
    room_number: Optional[str] = Field(default=None, max_length=40)
    capacity: int = Field(default=40, gt=0, le=500)


@records_router.get("/api/admin/classes")
async def list_classes(request: Request):
    return _json_private(await get_context(request).api.list_classes())


@records_router.post("/api/admin/classes")
async def create_class(request: Request, payload: ClassCreate):
    try:
        created = await get_context(request).api.add_class(
            payload.name,
            payload.section,
            class_teacher_id=payload.class_teacher_id,
            room_number=payload.room_number,
            capacity=payload.capacity,
        )
    except ValueError as exc:
        return _private_error("bad_request", status_code=400, detail=str(exc))
    logger.info("Class created id=%s name=%s", created["id"], created["name"])
    return _json_private(created, status_code=201)


@records_router.delete("/api/admin/classes/{class_id}")
async def delete_class(request: Request, class_id: str):
    ctx = get_context(request)
    cls = ctx.records.get_by_id(Collection.CLASSES, class_id)
    if cls is None:
        raise NotFound(f"classes:{class_id}")
    await ctx.api.delete_class(cls["id"])
    return _json_private({"deleted": cls["id"]})
