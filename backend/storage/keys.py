"""
Fixed storage keys and key helpers.

Why:
    Every persisted blob lives under one well-known key. Keeping them in one
    module prevents drift between the record store, the lock registry and the
    session areas (and keeps existing data readable across releases).

Conventions:
    - Collections: school_portal_<collection> (JSON array)
    - Feature locks: admin_student_locks (JSON object "<id>_<feature>" -> bool)
    - Session identity: school_portal_user (JSON object, session-scoped area)
"""
from __future__ import annotations

import re

STUDENTS_KEY = "school_portal_students"
TEACHERS_KEY = "school_portal_teachers"
ADMINS_KEY = "school_portal_admins"
NOTICES_KEY = "school_portal_notices"
TESTS_KEY = "school_portal_tests"
CLASSES_KEY = "school_portal_classes"
TIMETABLES_KEY = "school_portal_timetables"
FEATURE_LOCKS_KEY = "admin_student_locks"
SESSION_USER_KEY = "school_portal_user"

_FEATURE_RE = re.compile(r"^[a-z][a-z0-9_-]*$")


def make_lock_key(subject_id: str, feature: str) -> str:
    """Build the lock map key for a subject/feature pair.

    Returns: "<subject_id>_<feature>"

    Subject ids are taken verbatim (they may contain underscores); the feature
    must be a lowercase slug so the key stays unambiguous from the right.
    """
    subject = str(subject_id or "").strip()
    if not subject:
        raise ValueError("invalid_subject_id")
    feat = str(feature or "").strip().lower()
    if not _FEATURE_RE.match(feat):
        raise ValueError("invalid_feature")
    return f"{subject}_{feat}"


__all__ = [
    "STUDENTS_KEY",
    "TEACHERS_KEY",
    "ADMINS_KEY",
    "NOTICES_KEY",
    "TESTS_KEY",
    "CLASSES_KEY",
    "TIMETABLES_KEY",
    "FEATURE_LOCKS_KEY",
    "SESSION_USER_KEY",
    "make_lock_key",
]
