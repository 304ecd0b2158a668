"""
Feature lock registry: admin-controlled per-student feature gates.

The map is a single JSON object under `admin_student_locks`, keyed
"<subject_id>_<feature>" with boolean values. Pages read it on every request;
there is no subscription mechanism and no audit trail.
"""
from __future__ import annotations

import json
import logging
from typing import Dict

from backend.storage.keys import FEATURE_LOCKS_KEY, make_lock_key
from backend.storage.ports import KeyValueStorage

logger = logging.getLogger("portal.identity_access")

FEATURES: Dict[str, str] = {
    "fees": "Fees Status",
    "attendance": "Attendance",
    "results": "Results",
    "assignments": "Assignments",
    "notices": "Notices",
    "timetable": "Timetable",
    "messages": "Messages",
}


def feature_label(feature: str) -> str:
    return FEATURES.get(feature, feature.replace("_", " ").title())


class FeatureLockRegistry:
    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage

    def _read(self) -> Dict[str, bool]:
        raw = self._storage.get_item(FEATURE_LOCKS_KEY)
        if raw is None:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            data = None
        if not isinstance(data, dict):
            logger.warning("Corrupt feature lock map reset")
            self._storage.remove_item(FEATURE_LOCKS_KEY)
            return {}
        return {str(k): bool(v) for k, v in data.items()}

    def _write(self, locks: Dict[str, bool]) -> None:
        self._storage.set_item(FEATURE_LOCKS_KEY, json.dumps(locks))

    def is_locked(self, subject_id: str, feature: str) -> bool:
        try:
            key = make_lock_key(subject_id, feature)
        except ValueError:
            return False
        return self._read().get(key, False)

    def set_locked(self, subject_id: str, feature: str, locked: bool) -> None:
        if feature not in FEATURES:
            raise ValueError("unknown_feature")
        key = make_lock_key(subject_id, feature)
        locks = self._read()
        locks[key] = bool(locked)
        self._write(locks)
        logger.info("Feature lock set key=%s locked=%s", key, bool(locked))

    def toggle(self, subject_id: str, feature: str) -> bool:
        new_state = not self.is_locked(subject_id, feature)
        self.set_locked(subject_id, feature, new_state)
        return new_state

    def locks_for(self, subject_id: str) -> Dict[str, bool]:
        locks = self._read()
        return {feature: locks.get(make_lock_key(subject_id, feature), False) for feature in FEATURES}


__all__ = ["FEATURES", "FeatureLockRegistry", "feature_label"]
