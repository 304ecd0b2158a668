"""
Record API: identity CRUD (admin), notices (admin/teacher), timetables and the
teacher's classes.
"""
from __future__ import annotations

import pytest

from utils.portal_client import login, make_client

pytestmark = pytest.mark.anyio("asyncio")

NEW_STUDENT = {"id": "STU003", "name": "Mia Chen", "password": "welcome1", "grade_level": "10th Grade"}


async def test_admin_creates_student_who_can_log_in(app, portal):
    async with make_client(app) as client:
        await login(client, "ADM001", "admin123")
        r = await client.post("/api/students", json=NEW_STUDENT)
    assert r.status_code == 201
    body = r.json()
    assert body["id"] == "STU003" and body["role"] == "student"
    assert "password" not in body and "password_hash" not in body
    stored = portal.records.get_by_id("students", "STU003")
    assert "password" not in stored and stored["password_hash"].startswith("$pbkdf2-sha256$")
    async with make_client(app) as student:
        me = (await login(student, "STU003", "welcome1")).json()["user"]
    assert me["grade_level"] == "10th Grade"


async def test_duplicate_ids_are_rejected_across_collections(app):
    async with make_client(app) as client:
        await login(client, "ADM001", "admin123")
        same = await client.post("/api/students", json={**NEW_STUDENT, "id": "STU001"})
        cross = await client.post("/api/teachers", json={"id": "STU002", "name": "T", "password": "secret12"})
    assert same.status_code == 409
    assert same.json() == {"error": "duplicate_id"}
    assert cross.status_code == 409


async def test_create_student_validation(app):
    async with make_client(app) as client:
        await login(client, "ADM001", "admin123")
        r = await client.post("/api/students", json={"id": "bad id", "name": "X", "password": "short"})
    assert r.status_code == 400
    assert r.json()["error"] == "bad_request"


async def test_list_and_filter_students(app):
    async with make_client(app) as client:
        await login(client, "ADM001", "admin123")
        everyone = (await client.get("/api/students")).json()
        tenth = (await client.get("/api/students", params={"grade_level": "10th Grade"})).json()
        admins = (await client.get("/api/admins")).json()
    assert [s["id"] for s in everyone] == ["STU001", "STU002"]
    assert all("password_hash" not in s for s in everyone)
    assert [s["id"] for s in tenth] == ["STU001"]
    assert [a["id"] for a in admins] == ["ADM001"]


async def test_update_student_and_password(app, portal):
    async with make_client(app) as client:
        await login(client, "ADM001", "admin123")
        r = await client.put("/api/students/STU002", json={"grade_level": "12th Grade", "password": "newpass1"})
        missing = await client.put("/api/students/STU404", json={"name": "Ghost"})
    assert r.status_code == 200
    assert r.json()["grade_level"] == "12th Grade"
    assert missing.status_code == 404
    assert portal.auth.authenticate("STU002", "newpass1")["grade_level"] == "12th Grade"


async def test_update_cannot_inject_password_hash_or_role(app, portal):
    async with make_client(app) as client:
        await login(client, "ADM001", "admin123")
        r = await client.put("/api/teachers/TCH001", json={"role": "admin", "password_hash": "x"})
    assert r.status_code == 200
    stored = portal.records.get_by_id("teachers", "TCH001")
    assert stored["role"] == "teacher"
    assert stored["password_hash"] != "x"


async def test_delete_teacher(app, portal):
    async with make_client(app) as client:
        await login(client, "ADM001", "admin123")
        first = await client.delete("/api/teachers/TCH002")
        second = await client.delete("/api/teachers/TCH002")
    assert first.status_code == 200
    assert second.status_code == 404
    assert portal.records.get_by_id("teachers", "TCH002") is None


async def test_teacher_posts_and_deletes_own_notice(app):
    async with make_client(app) as client:
        await login(client, "TCH001", "password123")
        created = await client.post("/api/notices", json={"title": "Quiz", "content": "Friday", "priority": "high"})
        assert created.status_code == 201
        notice = created.json()
        assert notice["created_by"] == "TCH001"
        listing = (await client.get("/api/notices")).json()
        assert listing[0]["id"] == notice["id"]
        foreign = await client.delete("/api/notices/1")
        own = await client.delete(f"/api/notices/{notice['id']}")
    assert foreign.status_code == 403
    assert own.status_code == 200


async def test_student_cannot_post_notice(app):
    async with make_client(app) as client:
        await login(client, "STU001", "password123")
        r = await client.post("/api/notices", json={"title": "Hi", "content": "There"})
        listing = await client.get("/api/notices")
    assert r.status_code == 403
    assert listing.status_code == 200


async def test_notice_priority_is_validated(app):
    async with make_client(app) as client:
        await login(client, "ADM001", "admin123")
        r = await client.post("/api/notices", json={"title": "A", "content": "B", "priority": "urgent"})
        gone = await client.delete("/api/notices/999")
    assert r.status_code == 400
    assert gone.status_code == 404


async def test_teacher_classes_api(app):
    async with make_client(app) as client:
        await login(client, "TCH002", "password123")
        r = await client.get("/api/teacher/classes")
    assert r.status_code == 200
    classes = r.json()
    assert [c["grade_level"] for c in classes] == ["9th Grade", "10th Grade"]
    assert classes[0]["students"] == []
    assert [s["id"] for s in classes[1]["students"]] == ["STU001"]


async def test_timetables(app):
    async with make_client(app) as client:
        await login(client, "ADM001", "admin123")
        put = await client.put(
            "/api/admin/timetables/10th Grade",
            json={"Monday": [{"time": "08:00 - 09:00", "subject": "Biology"}]},
        )
        bad = await client.put("/api/admin/timetables/10th Grade", json={"Sunday": []})
    assert put.status_code == 200
    assert put.json()["Monday"][0] == {"time": "08:00 - 09:00", "subject": "Biology", "teacher": "-", "room": "-"}
    assert bad.status_code == 400
    async with make_client(app) as student:
        await login(student, "STU001", "password123")
        r = await student.get("/api/timetables/10th Grade")
        page = await student.get("/timetable")
    assert r.json()["Monday"][0]["subject"] == "Biology"
    assert "Biology" in page.text


async def test_update_with_legacy_class_key_changes_grade_level(app, portal):
    async with make_client(app) as client:
        await login(client, "ADM001", "admin123")
        r = await client.put("/api/students/STU001", json={"class": "12th Grade"})
    assert r.status_code == 200
    assert r.json()["grade_level"] == "12th Grade"
    stored = portal.records.get_by_id("students", "STU001")
    assert stored["grade_level"] == "12th Grade"
    assert "class" not in stored


async def test_teacher_marks_attendance_for_own_students(app, portal):
    async with make_client(app) as client:
        await login(client, "TCH001", "password123")
        ok = await client.post(
            "/api/teacher/attendance", json={"date": "2024-03-05", "records": {"STU001": "Absent"}}
        )
        bad = await client.post(
            "/api/teacher/attendance", json={"date": "2024-03-06", "records": {"STU001": "late"}}
        )
    assert ok.status_code == 200
    assert ok.json() == {"date": "2024-03-05", "updated": 1}
    attendance = await portal.api.get_attendance("STU001")
    assert attendance["summary"]["absent"] == 6
    assert attendance["daily"][0] == {"date": "2024-03-05", "status": "Absent"}
    assert bad.status_code == 400


async def test_teacher_cannot_mark_students_outside_their_classes(app):
    async with make_client(app) as client:
        await login(client, "TCH002", "password123")
        r = await client.post(
            "/api/teacher/attendance", json={"date": "2024-03-05", "records": {"STU002": "Present"}}
        )
    assert r.status_code == 403
    async with make_client(app) as student:
        await login(student, "STU001", "password123")
        denied = await student.post(
            "/api/teacher/attendance", json={"date": "2024-03-05", "records": {"STU001": "Present"}}
        )
    assert denied.status_code == 403


async def test_teacher_creates_test_and_updates_marks(app):
    async with make_client(app) as client:
        await login(client, "TCH001", "password123")
        created = await client.post(
            "/api/teacher/tests",
            json={"name": "Quiz 1", "subject": "Mathematics", "date": "2024-04-02", "total_marks": 20,
                  "marks": {"STU001": 18}},
        )
        assert created.status_code == 201
        test_id = created.json()["id"]
        updated = await client.post(f"/api/teacher/tests/{test_id}/marks", json={"marks": {"STU002": 15}})
        over = await client.post(f"/api/teacher/tests/{test_id}/marks", json={"marks": {"STU001": 21}})
        missing = await client.post("/api/teacher/tests/404/marks", json={"marks": {"STU001": 1}})
        listing = (await client.get("/api/teacher/tests")).json()
    assert updated.status_code == 200
    assert updated.json()["marks"] == {"STU001": 18, "STU002": 15}
    assert over.status_code == 400
    assert missing.status_code == 404
    assert [t["id"] for t in listing] == [test_id]

    async with make_client(app) as other:
        await login(other, "TCH002", "password123")
        foreign = await other.post(f"/api/teacher/tests/{test_id}/marks", json={"marks": {"STU001": 1}})
        own_list = (await other.get("/api/teacher/tests")).json()
    assert foreign.status_code == 403
    assert own_list == []


async def test_admin_manages_classes(app):
    async with make_client(app) as client:
        await login(client, "ADM001", "admin123")
        created = await client.post(
            "/api/admin/classes",
            json={"name": "11th Grade", "section": "B", "class_teacher_id": "TCH002", "room_number": "204"},
        )
        bad_teacher = await client.post(
            "/api/admin/classes", json={"name": "9th Grade", "section": "A", "class_teacher_id": "TCH404"}
        )
        listing = (await client.get("/api/admin/classes")).json()
        dashboard = await client.get("/admin/dashboard")
        class_id = created.json()["id"]
        deleted = await client.delete(f"/api/admin/classes/{class_id}")
        again = await client.delete(f"/api/admin/classes/{class_id}")
    assert created.status_code == 201
    assert created.json()["capacity"] == 40
    assert bad_teacher.status_code == 400
    assert listing[0]["teacher_name"] == "Ms. Roberts"
    assert listing[0]["student_count"] == 1
    assert "<span>Classes</span><strong>1</strong>" in dashboard.text
    assert deleted.status_code == 200
    assert again.status_code == 404

    async with make_client(app) as teacher:
        await login(teacher, "TCH001", "password123")
        r = await teacher.get("/api/admin/classes")
    assert r.status_code == 403
