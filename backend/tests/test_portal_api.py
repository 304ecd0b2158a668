"""
Portal API facade and the display-side aggregation helpers.
"""
from __future__ import annotations

import json

import pytest

from backend.records import summaries
from backend.records.api import PortalAPI
from backend.records.errors import NotFound
from backend.records.fixtures import WEEKDAYS
from backend.records.store import RecordStore
from backend.storage.keys import TIMETABLES_KEY

pytestmark = pytest.mark.anyio("asyncio")


@pytest.fixture
def api(records: RecordStore) -> PortalAPI:
    return PortalAPI(records, records.storage)


async def test_student_getters(api: PortalAPI):
    attendance = await api.get_attendance("STU001")
    assert attendance["summary"] == {"present": 85, "absent": 5, "leave": 2}
    assert [a["title"] for a in await api.get_assignments("STU001")] == ["Math Homework", "History Essay"]
    assert (await api.get_tests("STU002"))[0]["subject"] == "Chemistry"
    assert (await api.get_fees("STU001"))["pending"][0]["amount"] == 200
    assert "password_hash" not in await api.get_student("STU001")


async def test_unknown_student_raises_not_found(api: PortalAPI):
    with pytest.raises(NotFound):
        await api.get_attendance("STU404")
    with pytest.raises(NotFound):
        await api.get_fees("TCH001")


async def test_fees_fall_back_to_default_figures(api: PortalAPI, records: RecordStore):
    records.add("students", {"id": "STU005", "name": "No Fees", "grade_level": "9th Grade"})
    assert await api.get_fees("STU005") == {"total": 5000, "paid": 2000, "pending": 3000}


async def test_timetable_is_seeded_per_grade(api: PortalAPI, records: RecordStore):
    week = await api.get_timetable("10th Grade")
    assert list(week) == list(WEEKDAYS)
    stored = json.loads(records.storage.get_item(TIMETABLES_KEY))
    assert list(stored) == ["10th Grade"]
    assert await api.get_timetable("10th Grade") == week


async def test_save_timetable_replaces_week(api: PortalAPI):
    saved = await api.save_timetable("11th Grade", {"Monday": [{"time": "08:00", "subject": "Art"}]})
    assert saved["Monday"] == [{"time": "08:00", "subject": "Art"}]
    assert saved["Friday"] == []
    assert await api.get_timetable("11th Grade") == saved
    with pytest.raises(ValueError):
        await api.save_timetable("11th Grade", {"Sunday": []})


async def test_teacher_classes_group_students(api: PortalAPI):
    classes = await api.get_teacher_classes("TCH001")
    assert [c["grade_level"] for c in classes] == ["10th Grade", "11th Grade"]
    assert [s["id"] for s in classes[0]["students"]] == ["STU001"]
    assert all("password_hash" not in s for c in classes for s in c["students"])
    with pytest.raises(NotFound):
        await api.get_teacher_classes("STU001")


async def test_mark_attendance_updates_summary_and_daily_log(api: PortalAPI):
    first = await api.mark_attendance("STU001", "2024-03-05", "present")
    assert first["summary"] == {"present": 86, "absent": 5, "leave": 2}
    assert first["daily"][0] == {"date": "2024-03-05", "status": "Present"}

    # marking the same day again moves the count instead of adding one
    again = await api.mark_attendance("STU001", "2024-03-05", "Leave")
    assert again["summary"] == {"present": 85, "absent": 5, "leave": 3}
    assert [d["date"] for d in again["daily"]].count("2024-03-05") == 1


async def test_mark_attendance_rejects_bad_input(api: PortalAPI):
    with pytest.raises(ValueError, match="invalid_status"):
        await api.mark_attendance("STU001", "2024-03-05", "late")
    with pytest.raises(ValueError, match="invalid_date"):
        await api.mark_attendance("STU001", "05/03/2024", "present")
    with pytest.raises(NotFound):
        await api.mark_attendance("STU404", "2024-03-05", "present")


async def test_tests_and_marks(api: PortalAPI):
    test = await api.add_test(
        "Unit Test 1", "Mathematics", "2024-04-01", 50, teacher_id="TCH001", marks={"STU001": 42}
    )
    assert isinstance(test["id"], int)
    assert test["marks"] == {"STU001": 42}

    updated = await api.update_marks(test["id"], {"STU002": 30, "STU001": 45})
    assert updated["marks"] == {"STU001": 45, "STU002": 30}
    assert (await api.get_test(str(test["id"])))["marks"]["STU002"] == 30

    assert [t["id"] for t in await api.list_tests(teacher_id="TCH001")] == [test["id"]]
    assert await api.list_tests(teacher_id="TCH002") == []

    with pytest.raises(ValueError, match="invalid_marks"):
        await api.update_marks(test["id"], {"STU001": 51})
    with pytest.raises(NotFound):
        await api.update_marks(999, {"STU001": 1})
    with pytest.raises(NotFound):
        await api.add_test("X", "Y", "2024-04-01", 10, marks={"STU404": 1})


async def test_class_crud_reports_teacher_and_head_count(api: PortalAPI):
    created = await api.add_class("10th Grade", "A", class_teacher_id="TCH001", room_number="101")
    assert created["capacity"] == 40

    classes = await api.list_classes()
    assert classes == [{**created, "teacher_name": "Mr. Anderson", "student_count": 1}]

    with pytest.raises(ValueError, match="unknown_teacher"):
        await api.add_class("9th Grade", "B", class_teacher_id="TCH404")

    await api.delete_class(created["id"])
    assert await api.list_classes() == []
    with pytest.raises(NotFound):
        await api.delete_class(created["id"])


async def test_notice_subscription_receives_changes(api: PortalAPI):
    seen = []
    unsubscribe = api.subscribe_notices(lambda notices: seen.append([n["title"] for n in notices]))
    assert seen == [["Fee Deadline Approaching", "Attendance Policy"]]

    notice = await api.add_notice("Holiday", "School closed Monday", priority="low", created_by="ADM001")
    assert seen[-1][0] == "Holiday"
    assert notice["created_by"] == "ADM001"

    await api.delete_notice(notice["id"])
    assert seen[-1] == ["Fee Deadline Approaching", "Attendance Policy"]

    unsubscribe()
    await api.add_notice("Quiet", "Nobody listens")
    assert len(seen) == 3
    unsubscribe()  # second call is harmless


async def test_notice_validation_and_missing_delete(api: PortalAPI):
    with pytest.raises(ValueError):
        await api.add_notice("Bad", "priority", priority="urgent")
    with pytest.raises(NotFound):
        await api.delete_notice(123)


def test_attendance_percentage():
    assert summaries.attendance_percentage({"present": 85, "absent": 5, "leave": 2}) == 92.4
    assert summaries.attendance_percentage({}) == 0.0


def test_fee_summary_shapes():
    ledger = summaries.fee_summary({"pending": [{"amount": 200}], "paid": [{"amount": 500}]})
    assert ledger == {"total": 700.0, "paid": 500.0, "pending": 200.0, "paid_percentage": 71.4}
    assert summaries.fee_summary(None)["paid_percentage"] == 40.0
    assert summaries.fee_summary({"total": 100, "paid": 25, "pending": 75})["paid_percentage"] == 25.0


def test_result_averages():
    rows = summaries.result_averages([{"subject": "Math", "mid_term": 92, "final": 96, "assignment": 94}])
    assert rows == [{"subject": "Math", "average": 94.0}]
    assert summaries.result_averages([{"subject": "Art"}]) == [{"subject": "Art", "average": 0.0}]


def test_group_daily_by_month_skips_bad_dates():
    grouped = summaries.group_daily_by_month(
        [
            {"date": "2024-03-01", "status": "Present"},
            {"date": "2024-03-02", "status": "Absent"},
            {"date": "2024-04-01", "status": "leave"},
            {"date": "someday", "status": "Present"},
        ]
    )
    assert grouped == {
        "2024-03": {"present": 1, "absent": 1, "leave": 0},
        "2024-04": {"present": 0, "absent": 0, "leave": 1},
    }
