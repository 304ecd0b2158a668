"""
Server-rendered pages: home, dashboards, student feature pages, notices and
profile.

Behavior:
    - The guard middleware has already decided whether the caller may open the
      page; handlers only read `request.state.user`.
    - Student feature pages consult the lock registry on every request and
      render the "Access Locked" view with HTTP 403 when locked.
    - If storage fails while loading page data, the page logs a warning and
      renders an empty dataset instead of an error page.
"""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from backend.identity_access.domain import home_path_for
from backend.identity_access.locks import FEATURES, feature_label
from backend.records import summaries
from backend.records.errors import NotFound, StorageUnavailable
from backend.records.fixtures import WEEKDAYS
from backend.records.store import Collection
from backend.web.components import Component, FeatureLocked, Table
from backend.web.responses import _layout_response, current_user, get_context

pages_router = APIRouter(tags=["Pages"])
logger = logging.getLogger("portal.web.pages")

esc = Component.escape

STUDENT_TILES = [
    ("/fees", "fees", "Check pending dues"),
    ("/attendance", "attendance", "View daily records"),
    ("/results", "results", "Term performance"),
    ("/assignments", "assignments", "Homework & tasks"),
    ("/notices", "notices", "School updates"),
    ("/timetable", "timetable", "Weekly schedule"),
    ("/messages", "messages", "Teacher chat"),
]


async def _load(loader: Callable[[], Awaitable[Any]], empty: Any, what: str) -> Any:
    try:
        return await loader()
    except (StorageUnavailable, NotFound) as exc:
        logger.warning("Page data unavailable what=%s: %s", what, exc.__class__.__name__)
        return empty


def _locks_for(request: Request, student_id: str) -> dict[str, bool]:
    # unreadable lock map: treated as unlocked
    try:
        return get_context(request).locks.locks_for(student_id)
    except StorageUnavailable as exc:
        logger.warning("Feature locks unavailable: %s", exc.__class__.__name__)
        return {feature: False for feature in FEATURES}


def _locked_response(request: Request, feature: str) -> HTMLResponse | None:
    user = current_user(request) or {}
    if str(user.get("role") or "") != "student":
        return None
    if not _locks_for(request, str(user.get("id") or "")).get(feature):
        return None
    logger.info("Feature locked feature=%s", feature)
    return _layout_response(request, "Access Locked", FeatureLocked(feature_label(feature)).render(), status_code=403)


def _notice_list(notices: list[dict]) -> str:
    if not notices:
        return '<p class="text-muted empty-state">No notices yet.</p>'
    items = []
    for n in notices:
        priority = str(n.get("priority") or "low")
        items.append(
            f'<article class="notice notice-{esc(priority)}">'
            f'<h3>{esc(n.get("title"))}</h3>'
            f'<p class="notice-meta">{esc(n.get("date"))} &middot; {esc(priority)}</p>'
            f"<p>{esc(n.get('content'))}</p></article>"
        )
    return "".join(items)


# --- public ----------------------------------------------------------------------


@pages_router.get("/", response_class=HTMLResponse)
async def home(request: Request):
    user = current_user(request)
    if user:
        content = f"""
        <section class="card">
            <h1>Welcome back, {esc(user.get("name"))}</h1>
            <p><a class="btn" href="{esc(home_path_for(user.get("role")))}">Go to your dashboard</a></p>
        </section>"""
    else:
        content = """
        <section class="card hero">
            <h1>School Portal</h1>
            <p>Attendance, results, fees and notices for students, teachers and administrators.</p>
            <p><a class="btn btn-primary" href="/login">Login</a></p>
        </section>"""
    return _layout_response(request, "Home", content)


# --- student ---------------------------------------------------------------------


@pages_router.get("/dashboard", response_class=HTMLResponse)
async def student_dashboard(request: Request):
    user = current_user(request) or {}
    locks = _locks_for(request, str(user.get("id")))
    tiles = []
    for href, feature, desc in STUDENT_TILES:
        badge = ' <span class="badge badge-locked">Locked</span>' if locks.get(feature) else ""
        tiles.append(
            f'<a class="tile" href="{href}"><strong>{esc(feature_label(feature))}</strong>{badge}'
            f'<span class="text-muted">{esc(desc)}</span></a>'
        )
    content = f"""
        <header class="dashboard-header">
            <span class="badge">Student</span> <span class="text-muted">ID: {esc(user.get("id"))}</span>
            <h1>{esc(user.get("name"))}</h1>
            <p class="text-muted">{esc(user.get("grade_level"))}</p>
        </header>
        <section class="tiles">{''.join(tiles)}</section>"""
    return _layout_response(request, "Dashboard", content)


@pages_router.get("/fees", response_class=HTMLResponse)
async def fees_page(request: Request):
    locked = _locked_response(request, "fees")
    if locked:
        return locked
    user = current_user(request) or {}
    api = get_context(request).api
    fees = await _load(lambda: api.get_fees(user["id"]), {}, "fees")
    totals = summaries.fee_summary(fees)
    pending = fees.get("pending") if isinstance(fees.get("pending"), list) else []
    paid = fees.get("paid") if isinstance(fees.get("paid"), list) else []
    content = f"""
        <h1>Fees Status</h1>
        <section class="stats">
            <div class="stat"><span>Total</span><strong>{totals["total"]:.2f}</strong></div>
            <div class="stat"><span>Paid</span><strong>{totals["paid"]:.2f}</strong></div>
            <div class="stat"><span>Pending</span><strong>{totals["pending"]:.2f}</strong></div>
            <div class="stat"><span>Paid %</span><strong>{totals["paid_percentage"]}%</strong></div>
        </section>
        <h2>Pending</h2>
        {Table(["Amount", "Due"], [(p.get("amount"), p.get("due")) for p in pending], "No pending fees.").render()}
        <h2>Paid</h2>
        {Table(["Amount", "Date"], [(p.get("amount"), p.get("date")) for p in paid], "No payments yet.").render()}"""
    return _layout_response(request, "Fees Status", content)


@pages_router.get("/attendance", response_class=HTMLResponse)
async def attendance_page(request: Request):
    locked = _locked_response(request, "attendance")
    if locked:
        return locked
    user = current_user(request) or {}
    api = get_context(request).api
    attendance = await _load(lambda: api.get_attendance(user["id"]), {}, "attendance")
    summary = attendance.get("summary") or {}
    by_month = summaries.group_daily_by_month(attendance.get("daily") or [])
    content = f"""
        <h1>Attendance</h1>
        <section class="stats">
            <div class="stat"><span>Attendance</span><strong>{summaries.attendance_percentage(summary)}%</strong></div>
            <div class="stat"><span>Present</span><strong>{esc(summary.get("present", 0))}</strong></div>
            <div class="stat"><span>Absent</span><strong>{esc(summary.get("absent", 0))}</strong></div>
            <div class="stat"><span>Leave</span><strong>{esc(summary.get("leave", 0))}</strong></div>
        </section>
        <h2>By subject</h2>
        {Table(["Subject", "Present", "Absent"], [(s.get("subject"), s.get("present"), s.get("absent")) for s in attendance.get("subject") or []]).render()}
        <h2>Daily records</h2>
        {Table(["Month", "Present", "Absent", "Leave"], [(m, c["present"], c["absent"], c["leave"]) for m, c in by_month.items()]).render()}"""
    return _layout_response(request, "Attendance", content)


@pages_router.get("/results", response_class=HTMLResponse)
async def results_page(request: Request):
    locked = _locked_response(request, "results")
    if locked:
        return locked
    user = current_user(request) or {}
    api = get_context(request).api
    results = await _load(lambda: api.get_tests(user["id"]), [], "results")
    averages = {row["subject"]: row["average"] for row in summaries.result_averages(results)}
    rows = [
        (r.get("subject"), r.get("mid_term"), r.get("final"), r.get("assignment"), averages.get(r.get("subject", ""), 0.0))
        for r in results
    ]
    content = f"""
        <h1>Exam Results</h1>
        {Table(["Subject", "Mid term", "Final", "Assignment", "Average"], rows, "No results published yet.").render()}"""
    return _layout_response(request, "Results", content)


@pages_router.get("/assignments", response_class=HTMLResponse)
async def assignments_page(request: Request):
    locked = _locked_response(request, "assignments")
    if locked:
        return locked
    user = current_user(request) or {}
    api = get_context(request).api
    assignments = await _load(lambda: api.get_assignments(user["id"]), [], "assignments")
    rows = [(a.get("title"), a.get("due"), a.get("status")) for a in assignments]
    content = f"""
        <h1>Assignments</h1>
        {Table(["Title", "Due", "Status"], rows, "No assignments.").render()}"""
    return _layout_response(request, "Assignments", content)


@pages_router.get("/timetable", response_class=HTMLResponse)
async def timetable_page(request: Request):
    locked = _locked_response(request, "timetable")
    if locked:
        return locked
    user = current_user(request) or {}
    api = get_context(request).api
    grade = str(user.get("grade_level") or "")
    week = await _load(lambda: api.get_timetable(grade), {}, "timetable") if grade else {}
    sections = []
    for day in WEEKDAYS:
        entries = week.get(day) or []
        rows = [(e.get("time"), e.get("subject"), e.get("teacher"), e.get("room")) for e in entries]
        sections.append(f"<h2>{esc(day)}</h2>{Table(['Time', 'Subject', 'Teacher', 'Room'], rows).render()}")
    content = f"<h1>Class Routine</h1><p class=\"text-muted\">{esc(grade)}</p>{''.join(sections)}"
    return _layout_response(request, "Timetable", content)


@pages_router.get("/messages", response_class=HTMLResponse)
async def messages_page(request: Request):
    locked = _locked_response(request, "messages")
    if locked:
        return locked
    user = current_user(request) or {}
    api = get_context(request).api
    messages = await _load(lambda: api.get_messages(user["id"]), [], "messages")
    rows = [(m.get("date"), m.get("from"), m.get("content")) for m in messages]
    content = f"""
        <h1>Messages</h1>
        {Table(["Date", "From", "Message"], rows, "No messages.").render()}"""
    return _layout_response(request, "Messages", content)


# --- any session -----------------------------------------------------------------


@pages_router.get("/notices", response_class=HTMLResponse)
async def notices_page(request: Request):
    locked = _locked_response(request, "notices")
    if locked:
        return locked
    api = get_context(request).api
    notices = await _load(api.get_notices, [], "notices")
    return _layout_response(request, "Notices", f"<h1>Notice Board</h1>{_notice_list(notices)}")


@pages_router.get("/profile", response_class=HTMLResponse)
async def profile_page(request: Request):
    user = current_user(request) or {}
    contact = user.get("contact") if isinstance(user.get("contact"), dict) else {}
    rows = [
        ("ID", user.get("id")),
        ("Name", user.get("name")),
        ("Role", str(user.get("role") or "").title()),
        ("Class", user.get("grade_level")),
        ("Subject", user.get("subject")),
        ("Email", user.get("email") or contact.get("email")),
        ("Phone", user.get("phone") or contact.get("phone")),
        ("Address", contact.get("address")),
    ]
    content = f"""
        <h1>Profile</h1>
        {Table(["Field", "Value"], [r for r in rows if r[1]]).render()}"""
    return _layout_response(request, "Profile", content)


# --- teacher ---------------------------------------------------------------------


@pages_router.get("/teacher/dashboard", response_class=HTMLResponse)
async def teacher_dashboard(request: Request):
    user = current_user(request) or {}
    api = get_context(request).api
    classes = await _load(lambda: api.get_teacher_classes(user["id"]), [], "teacher_classes")
    sections = []
    for cls in classes:
        rows = [(s.get("id"), s.get("name")) for s in cls["students"]]
        sections.append(
            f"<h2>{esc(cls['grade_level'])}</h2>{Table(['ID', 'Name'], rows, 'No students in this class.').render()}"
        )
    content = f"""
        <header class="dashboard-header">
            <span class="badge">Teacher</span>
            <h1>{esc(user.get("name"))}</h1>
            <p class="text-muted">{esc(user.get("subject"))}</p>
        </header>
        {''.join(sections) or '<p class="text-muted empty-state">No classes assigned.</p>'}"""
    return _layout_response(request, "Teacher Dashboard", content)


# --- admin -----------------------------------------------------------------------


@pages_router.get("/admin/dashboard", response_class=HTMLResponse)
async def admin_dashboard(request: Request):
    ctx = get_context(request)
    try:
        students = ctx.records.get_all(Collection.STUDENTS)
        teachers = ctx.records.get_all(Collection.TEACHERS)
        notices = ctx.records.get_all(Collection.NOTICES)
        classes = ctx.records.get_all(Collection.CLASSES)
    except StorageUnavailable as exc:
        logger.warning("Admin dashboard data unavailable: %s", exc.__class__.__name__)
        students, teachers, notices, classes = [], [], [], []
    rows = []
    for s in students:
        locked = [feature_label(f) for f, on in _locks_for(request, str(s.get("id"))).items() if on]
        rows.append((s.get("id"), s.get("name"), s.get("grade_level"), ", ".join(locked) or "-"))
    content = f"""
        <h1>Admin Dashboard</h1>
        <section class="stats">
            <div class="stat"><span>Students</span><strong>{len(students)}</strong></div>
            <div class="stat"><span>Teachers</span><strong>{len(teachers)}</strong></div>
            <div class="stat"><span>Notices</span><strong>{len(notices)}</strong></div>
            <div class="stat"><span>Classes</span><strong>{len(classes)}</strong></div>
        </section>
        <h2>Students</h2>
        {Table(["ID", "Name", "Class", "Locked features"], rows, "No students.").render()}
        <p class="text-muted">Lockable features: {esc(", ".join(feature_label(f) for f in FEATURES))}</p>"""
    return _layout_response(request, "Admin Dashboard", content)
