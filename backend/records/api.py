"""
Portal API facade: async read/write calls used by pages and routes.

Why:
    Pages depend on this narrow, awaitable surface rather than on the record
    store layout. A remote backend could replace it without touching callers.

Behavior:
    - Student-scoped getters raise `NotFound` for unknown ids.
    - Timetables are kept per grade level as one JSON object under
      `school_portal_timetables`; a missing grade is seeded with the default
      week and persisted on first read.
    - Notice subscribers receive the current list on subscribe and after every
      notice change made through this facade. Subscriptions live in memory.
    - Tests and classes get store-assigned numeric ids. Marks are kept on the
      test as a map student id -> score and are bounded by the test total.
"""
from __future__ import annotations

import copy
import json
import logging
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from backend.identity_access.domain import sanitize_identity
from backend.records.errors import NotFound
from backend.records.fixtures import WEEKDAYS, default_timetable
from backend.records.store import Collection, RecordStore
from backend.records.summaries import DEFAULT_FEES
from backend.storage.keys import TIMETABLES_KEY
from backend.storage.ports import KeyValueStorage

logger = logging.getLogger("portal.records")

NoticeListener = Callable[[List[dict]], None]
NOTICE_PRIORITIES = ("low", "medium", "high")
DEFAULT_CLASS_CAPACITY = 40
# summary key -> stored daily status
_ATTENDANCE_STATUSES = {"present": "Present", "absent": "Absent", "leave": "Leave"}


def _iso_date(value: str) -> str:
    try:
        return date.fromisoformat(str(value or "").strip()).isoformat()
    except ValueError:
        raise ValueError("invalid_date") from None


class PortalAPI:
    def __init__(self, records: RecordStore, storage: KeyValueStorage | None = None) -> None:
        self._records = records
        self._storage = storage if storage is not None else records.storage
        self._listeners: List[NoticeListener] = []

    # --- student data ------------------------------------------------------------

    def _student(self, user_id: str) -> dict:
        student = self._records.get_by_id(Collection.STUDENTS, user_id)
        if student is None:
            raise NotFound(f"students:{user_id}")
        return student

    async def get_student(self, user_id: str) -> dict:
        return sanitize_identity(self._student(user_id))

    async def get_attendance(self, user_id: str) -> dict:
        attendance = self._student(user_id).get("attendance") or {}
        return {
            "summary": dict(attendance.get("summary") or {}),
            "monthly": list(attendance.get("monthly") or []),
            "subject": list(attendance.get("subject") or []),
            "daily": list(attendance.get("daily") or []),
        }

    async def get_fees(self, user_id: str) -> dict:
        fees = self._student(user_id).get("fees")
        return copy.deepcopy(fees) if fees else dict(DEFAULT_FEES)

    async def get_assignments(self, user_id: str) -> List[dict]:
        return list(self._student(user_id).get("assignments") or [])

    async def get_tests(self, user_id: str) -> List[dict]:
        return list(self._student(user_id).get("results") or [])

    async def get_messages(self, user_id: str) -> List[dict]:
        return list(self._student(user_id).get("messages") or [])

    # --- timetables --------------------------------------------------------------

    def _read_timetables(self) -> Dict[str, Any]:
        raw = self._storage.get_item(TIMETABLES_KEY)
        if raw is None:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            data = None
        if not isinstance(data, dict):
            logger.warning("Corrupt timetables reset")
            self._storage.remove_item(TIMETABLES_KEY)
            return {}
        return data

    def _write_timetables(self, data: Dict[str, Any]) -> None:
        self._storage.set_item(TIMETABLES_KEY, json.dumps(data, ensure_ascii=False))

    async def get_timetable(self, grade_level: str) -> Dict[str, List[dict]]:
        grade = str(grade_level or "").strip()
        if not grade:
            raise ValueError("invalid_grade_level")
        tables = self._read_timetables()
        if grade not in tables:
            tables[grade] = default_timetable()
            self._write_timetables(tables)
            logger.info("Seeded default timetable grade=%s", grade)
        return tables[grade]

    async def save_timetable(self, grade_level: str, timetable: Dict[str, List[dict]]) -> Dict[str, List[dict]]:
        grade = str(grade_level or "").strip()
        if not grade:
            raise ValueError("invalid_grade_level")
        unknown = [day for day in timetable if day not in WEEKDAYS]
        if unknown:
            raise ValueError("invalid_weekday")
        tables = self._read_timetables()
        tables[grade] = {day: list(timetable.get(day) or []) for day in WEEKDAYS}
        self._write_timetables(tables)
        return tables[grade]

    # --- teachers ----------------------------------------------------------------

    async def get_teacher_classes(self, teacher_id: str) -> List[dict]:
        """Return each class the teacher teaches with its (sanitized) students."""
        teacher = self._records.get_by_id(Collection.TEACHERS, teacher_id)
        if teacher is None:
            raise NotFound(f"teachers:{teacher_id}")
        classes = []
        for grade in teacher.get("classes") or []:
            students = [sanitize_identity(s) for s in self._records.get_students_by_class(grade)]
            classes.append({"grade_level": grade, "subject": teacher.get("subject"), "students": students})
        return classes

    async def mark_attendance(self, student_id: str, day: str, status: str) -> dict:
        """Record one day's status for a student and return the new attendance.

        Marking a day again replaces the earlier entry and moves the summary
        counters from the old status to the new one.
        """
        canonical = _ATTENDANCE_STATUSES.get(str(status or "").strip().lower())
        if canonical is None:
            raise ValueError("invalid_status")
        day = _iso_date(day)
        student = self._student(student_id)
        attendance = dict(student.get("attendance") or {})
        summary = {key: int((attendance.get("summary") or {}).get(key) or 0) for key in _ATTENDANCE_STATUSES}
        daily = [d for d in attendance.get("daily") or [] if isinstance(d, dict)]
        previous = next((d for d in daily if d.get("date") == day), None)
        if previous is not None:
            old = str(previous.get("status") or "").lower()
            if old in summary and summary[old] > 0:
                summary[old] -= 1
            daily.remove(previous)
        summary[canonical.lower()] += 1
        daily.insert(0, {"date": day, "status": canonical})
        attendance.update(summary=summary, daily=daily)
        student["attendance"] = attendance
        self._records.update(Collection.STUDENTS, student)
        return await self.get_attendance(student_id)

    # --- tests and marks -----------------------------------------------------------

    def _check_marks(self, marks: Dict[str, Any], total_marks: int) -> Dict[str, int]:
        checked: Dict[str, int] = {}
        for student_id, score in (marks or {}).items():
            self._student(student_id)
            value = int(score)
            if value < 0 or value > total_marks:
                raise ValueError("invalid_marks")
            checked[str(student_id)] = value
        return checked

    async def list_tests(self, teacher_id: Optional[str] = None) -> List[dict]:
        tests = self._records.get_all(Collection.TESTS)
        if teacher_id is not None:
            tests = [t for t in tests if t.get("teacher_id") == teacher_id]
        return sorted(tests, key=lambda t: str(t.get("date") or ""), reverse=True)

    async def add_test(
        self,
        name: str,
        subject: str,
        day: str,
        total_marks: int,
        *,
        teacher_id: Optional[str] = None,
        class_name: Optional[str] = None,
        section: Optional[str] = None,
        marks: Optional[Dict[str, Any]] = None,
    ) -> dict:
        if int(total_marks) <= 0:
            raise ValueError("invalid_total_marks")
        test: Dict[str, Any] = {
            "name": name,
            "subject": subject,
            "date": _iso_date(day),
            "total_marks": int(total_marks),
            "section": section,
            "class_name": class_name,
            "teacher_id": teacher_id,
            "marks": self._check_marks(marks or {}, int(total_marks)),
        }
        stored = self._records.add_with_new_id(Collection.TESTS, test)
        logger.info("Test created id=%s teacher=%s", stored["id"], teacher_id)
        return stored

    async def get_test(self, test_id: Any) -> dict:
        test = self._records.get_by_id(Collection.TESTS, test_id)
        if test is None:
            raise NotFound(f"tests:{test_id}")
        return test

    async def update_marks(self, test_id: Any, marks: Dict[str, Any]) -> dict:
        """Set or replace the given students' scores; other scores stay."""
        test = await self.get_test(test_id)
        scores = dict(test.get("marks") or {})
        scores.update(self._check_marks(marks, int(test.get("total_marks") or 0)))
        test["marks"] = scores
        self._records.update(Collection.TESTS, test)
        return test

    # --- classes -------------------------------------------------------------------

    async def list_classes(self) -> List[dict]:
        """Return every class with its class teacher's name and head count."""
        teachers = {t.get("id"): t.get("name") for t in self._records.get_all(Collection.TEACHERS)}
        classes = []
        for cls in self._records.get_all(Collection.CLASSES):
            item = dict(cls)
            item["teacher_name"] = teachers.get(cls.get("class_teacher_id"))
            item["student_count"] = len(self._records.get_students_by_class(str(cls.get("name") or "")))
            classes.append(item)
        return classes

    async def add_class(
        self,
        name: str,
        section: str,
        *,
        class_teacher_id: Optional[str] = None,
        room_number: Optional[str] = None,
        capacity: int = DEFAULT_CLASS_CAPACITY,
    ) -> dict:
        if not str(name or "").strip() or not str(section or "").strip():
            raise ValueError("invalid_class")
        if int(capacity) <= 0:
            raise ValueError("invalid_capacity")
        if class_teacher_id and self._records.get_by_id(Collection.TEACHERS, class_teacher_id) is None:
            raise ValueError("unknown_teacher")
        record = {
            "name": name.strip(),
            "section": section.strip(),
            "class_teacher_id": class_teacher_id or None,
            "room_number": room_number,
            "capacity": int(capacity),
        }
        return self._records.add_with_new_id(Collection.CLASSES, record)

    async def delete_class(self, class_id: Any) -> None:
        if not self._records.delete(Collection.CLASSES, class_id):
            raise NotFound(f"classes:{class_id}")

    # --- notices -----------------------------------------------------------------

    async def get_notices(self) -> List[dict]:
        return self._records.get_all(Collection.NOTICES)

    async def add_notice(
        self,
        title: str,
        content: str,
        *,
        priority: str = "medium",
        created_by: Optional[str] = None,
        target_class: Optional[str] = None,
    ) -> dict:
        if priority not in NOTICE_PRIORITIES:
            raise ValueError("invalid_priority")
        notice: Dict[str, Any] = {"title": title, "content": content, "priority": priority}
        if created_by:
            notice["created_by"] = created_by
        if target_class:
            notice["target_class"] = target_class
        stored = self._records.add_notice(notice)
        self._notify()
        return stored

    async def delete_notice(self, notice_id: Any) -> None:
        if not self._records.delete(Collection.NOTICES, notice_id):
            raise NotFound(f"notices:{notice_id}")
        self._notify()

    def subscribe_notices(self, callback: NoticeListener) -> Callable[[], None]:
        """Register `callback`; returns a function that unsubscribes it."""
        self._listeners.append(callback)
        callback(self._records.get_all(Collection.NOTICES))

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        notices = self._records.get_all(Collection.NOTICES)
        for listener in list(self._listeners):
            listener(copy.deepcopy(notices))


__all__ = ["PortalAPI", "NOTICE_PRIORITIES", "DEFAULT_CLASS_CAPACITY"]
