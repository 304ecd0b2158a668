"""
Seed data for a fresh portal.

Used by `RecordStore.initialize()` when a collection key is absent. Passwords
here are the documented demo credentials; the store hashes them before they
are persisted, so plaintext never reaches storage.
"""
from __future__ import annotations

from typing import Any, Dict, List

STUDENTS: List[Dict[str, Any]] = [
    {
        "id": "STU001",
        "password": "password123",
        "name": "Alex Johnson",
        "role": "student",
        "grade_level": "10th Grade",
        "contact": {"email": "alex.j@school.edu", "phone": "555-0101", "address": "123 Main St, City"},
        "schedule": [
            {"subject": "Mathematics", "time": "09:00 AM", "room": "101"},
            {"subject": "History", "time": "10:30 AM", "room": "204"},
            {"subject": "Physics", "time": "01:00 PM", "room": "Lab 3"},
            {"subject": "English", "time": "02:30 PM", "room": "105"},
        ],
        "grades": [
            {"subject": "Mathematics", "grade": "A", "score": 95},
            {"subject": "History", "grade": "B+", "score": 88},
            {"subject": "Physics", "grade": "A-", "score": 91},
            {"subject": "English", "grade": "B", "score": 85},
        ],
        "photo": "/static/photos/STU001.jpg",
        "attendance": {
            "summary": {"present": 85, "absent": 5, "leave": 2},
            "monthly": [
                {"month": "Jan", "present": 20, "absent": 1},
                {"month": "Feb", "present": 18, "absent": 2},
            ],
            "subject": [
                {"subject": "Mathematics", "present": 18, "absent": 0},
                {"subject": "History", "present": 15, "absent": 2},
            ],
            "daily": [
                {"date": "2024-03-01", "status": "Present"},
                {"date": "2024-03-02", "status": "Absent"},
            ],
        },
        "results": [
            {"subject": "Mathematics", "mid_term": 92, "final": 96, "assignment": 94},
            {"subject": "History", "mid_term": 88, "final": 90, "assignment": 85},
        ],
        "assignments": [
            {"id": 1, "title": "Math Homework", "due": "2024-04-10", "status": "Submitted"},
            {"id": 2, "title": "History Essay", "due": "2024-04-12", "status": "Pending"},
        ],
        "fees": {
            "pending": [{"id": 1, "amount": 200, "due": "2024-05-01"}],
            "paid": [{"id": 2, "amount": 500, "date": "2024-01-15"}],
        },
        "messages": [
            {"id": 1, "from": "Teacher", "content": "Please submit your assignment.", "date": "2024-03-20"},
        ],
    },
    {
        "id": "STU002",
        "password": "password123",
        "name": "Sarah Williams",
        "role": "student",
        "grade_level": "11th Grade",
        "contact": {"email": "sarah.w@school.edu", "phone": "555-0102", "address": "456 Oak Ave, Town"},
        "schedule": [
            {"subject": "Chemistry", "time": "09:00 AM", "room": "Lab 1"},
            {"subject": "Literature", "time": "10:30 AM", "room": "202"},
            {"subject": "Calculus", "time": "01:00 PM", "room": "102"},
            {"subject": "Art", "time": "02:30 PM", "room": "Studio B"},
        ],
        "grades": [
            {"subject": "Chemistry", "grade": "A", "score": 94},
            {"subject": "Literature", "grade": "A", "score": 96},
            {"subject": "Calculus", "grade": "B", "score": 82},
            {"subject": "Art", "grade": "A+", "score": 98},
        ],
        "photo": "/static/photos/STU002.jpg",
        "attendance": {
            "summary": {"present": 90, "absent": 3, "leave": 1},
            "monthly": [
                {"month": "Jan", "present": 22, "absent": 0},
                {"month": "Feb", "present": 20, "absent": 1},
            ],
            "subject": [
                {"subject": "Chemistry", "present": 20, "absent": 0},
                {"subject": "Literature", "present": 18, "absent": 2},
            ],
            "daily": [
                {"date": "2024-03-01", "status": "Present"},
                {"date": "2024-03-02", "status": "Present"},
            ],
        },
        "results": [
            {"subject": "Chemistry", "mid_term": 94, "final": 95, "assignment": 93},
            {"subject": "Literature", "mid_term": 96, "final": 97, "assignment": 95},
        ],
        "assignments": [
            {"id": 1, "title": "Chemistry Lab", "due": "2024-04-15", "status": "Submitted"},
            {"id": 2, "title": "Literature Review", "due": "2024-04-18", "status": "Pending"},
        ],
        "fees": {
            "pending": [{"id": 1, "amount": 150, "due": "2024-06-01"}],
            "paid": [{"id": 2, "amount": 600, "date": "2024-02-10"}],
        },
        "messages": [
            {"id": 1, "from": "Teacher", "content": "Prepare for the upcoming test.", "date": "2024-03-22"},
        ],
    },
]

TEACHERS: List[Dict[str, Any]] = [
    {
        "id": "TCH001",
        "password": "password123",
        "name": "Mr. Anderson",
        "role": "teacher",
        "subject": "Mathematics",
        "classes": ["10th Grade", "11th Grade"],
        "email": "anderson@school.com",
        "phone": "+1234567891",
        "salary": 5000,
        "join_date": "2020-01-15",
    },
    {
        "id": "TCH002",
        "password": "password123",
        "name": "Ms. Roberts",
        "role": "teacher",
        "subject": "Science",
        "classes": ["9th Grade", "10th Grade"],
        "email": "roberts@school.com",
        "phone": "+1234567892",
        "salary": 4800,
        "join_date": "2021-03-20",
    },
]

ADMINS: List[Dict[str, Any]] = [
    {
        "id": "ADM001",
        "password": "admin123",
        "name": "Principal John Smith",
        "role": "admin",
        "email": "admin@school.com",
        "phone": "+1234567890",
    },
]

NOTICES: List[Dict[str, Any]] = [
    {
        "id": 1,
        "title": "Fee Deadline Approaching",
        "content": "Please note that fee submission deadline is May 30, 2025. Late fees will apply after this date.",
        "date": "2024-12-01",
        "priority": "high",
        "created_by": "ADM001",
    },
    {
        "id": 2,
        "title": "Attendance Policy",
        "content": "All students are required to maintain a minimum of 80% attendance to be eligible for final exams.",
        "date": "2024-11-28",
        "priority": "medium",
        "created_by": "ADM001",
    },
]

_DAY = [
    ("08:00 - 09:00", "Mathematics", "Mr. Anderson", "Room 101"),
    ("09:00 - 10:00", "Science", "Ms. Roberts", "Lab 1"),
    ("10:00 - 10:15", "Break", "-", "-"),
    ("10:15 - 11:15", "English", "Mrs. Johnson", "Room 203"),
    ("11:15 - 12:15", "History", "Mr. Davis", "Room 105"),
    ("12:15 - 01:00", "Lunch", "-", "-"),
    ("01:00 - 02:00", "Geography", "Ms. Wilson", "Room 107"),
]

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")


def default_timetable() -> Dict[str, List[Dict[str, str]]]:
    """Return a fresh default week (same periods every weekday, rotated)."""
    week: Dict[str, List[Dict[str, str]]] = {}
    teaching = [slot for slot in _DAY if slot[1] not in ("Break", "Lunch")]
    for shift, day in enumerate(WEEKDAYS):
        rotated = teaching[shift % len(teaching):] + teaching[: shift % len(teaching)]
        lessons = iter(rotated)
        entries = []
        for time_range, subject, teacher, room in _DAY:
            if subject not in ("Break", "Lunch"):
                _, subject, teacher, room = next(lessons)
            entries.append({"time": time_range, "subject": subject, "teacher": teacher, "room": room})
        week[day] = entries
    return week


SEED: Dict[str, List[Dict[str, Any]]] = {
    "students": STUDENTS,
    "teachers": TEACHERS,
    "admins": ADMINS,
    "notices": NOTICES,
}

__all__ = ["STUDENTS", "TEACHERS", "ADMINS", "NOTICES", "SEED", "WEEKDAYS", "default_timetable"]
