"""
Record store: named JSON collections over a key-value storage.

Why:
    All persisted portal data (identities, notices, tests, classes) goes
    through this one abstraction, so pages and routes never touch the storage
    medium directly and every access is testable.

Behavior:
    - Each collection is a JSON array under a fixed storage key.
    - Every operation is a synchronous whole-collection read-modify-write.
      There are no transactions; the last writer wins.
    - `add` rejects duplicate ids. `update` returns False for unknown ids and
      leaves the collection untouched.
    - A collection that holds corrupt JSON is logged, dropped and re-seeded
      instead of surfacing an error to the caller.
    - Legacy field spellings are normalised to one canonical name on write.
"""
from __future__ import annotations

import copy
import json
import logging
import time
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from backend.records.errors import DuplicateRecord
from backend.storage import keys
from backend.storage.ports import KeyValueStorage

logger = logging.getLogger("portal.records")

Record = Dict[str, Any]
SeedHook = Callable[[str, Record], Record]


class Collection(str, Enum):
    STUDENTS = "students"
    TEACHERS = "teachers"
    ADMINS = "admins"
    NOTICES = "notices"
    TESTS = "tests"
    CLASSES = "classes"

    @property
    def storage_key(self) -> str:
        return _STORAGE_KEYS[self]


_STORAGE_KEYS = {
    Collection.STUDENTS: keys.STUDENTS_KEY,
    Collection.TEACHERS: keys.TEACHERS_KEY,
    Collection.ADMINS: keys.ADMINS_KEY,
    Collection.NOTICES: keys.NOTICES_KEY,
    Collection.TESTS: keys.TESTS_KEY,
    Collection.CLASSES: keys.CLASSES_KEY,
}

IDENTITY_COLLECTIONS = (Collection.ADMINS, Collection.TEACHERS, Collection.STUDENTS)

# legacy spelling -> canonical field name
_FIELD_ALIASES: Dict[str, str] = {
    "gradeLevel": "grade_level",
    "grade": "grade_level",
    "class": "grade_level",
    "joinDate": "join_date",
    "createdBy": "created_by",
    "targetClass": "target_class",
    "totalMarks": "total_marks",
    "teacherId": "teacher_id",
    "className": "class_name",
    "classTeacherId": "class_teacher_id",
    "roomNumber": "room_number",
}
# aliases only apply where the canonical meaning holds ("grade" inside results
# is a letter grade, not a class)
_ALIASES_BY_COLLECTION: Dict[Collection, tuple[str, ...]] = {
    Collection.STUDENTS: ("gradeLevel", "grade", "class"),
    Collection.TEACHERS: ("joinDate",),
    Collection.ADMINS: (),
    Collection.NOTICES: ("createdBy", "targetClass"),
    Collection.TESTS: ("totalMarks", "teacherId", "className"),
    Collection.CLASSES: ("classTeacherId", "roomNumber"),
}


def as_collection(value: "Collection | str") -> Collection:
    """Coerce a collection name; unknown names raise ValueError."""
    if isinstance(value, Collection):
        return value
    try:
        return Collection(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"unknown_collection: {value}") from None


def normalize_fields(collection: "Collection | str", record: Mapping[str, Any]) -> Record:
    """Return a copy of `record` with legacy field names mapped to canonical ones.

    An explicit canonical value wins over an alias.
    """
    coll = as_collection(collection)
    out: Record = dict(record)
    for alias in _ALIASES_BY_COLLECTION[coll]:
        if alias in out:
            value = out.pop(alias)
            out.setdefault(_FIELD_ALIASES[alias], value)
    return out


def _same_id(left: Any, right: Any) -> bool:
    # Notice ids are numeric but may arrive as strings from URLs.
    if left == right:
        return True
    return left is not None and right is not None and str(left) == str(right)


class RecordStore:
    """Key-value backed store for the portal collections.

    Parameters
    ----------
    storage:
        Durable key-value storage (memory, JSON file or Postgres).
    fixtures:
        Mapping collection name -> seed records used by `initialize()`.
    on_seed:
        Optional hook applied to each seed record before it is written
        (used to hash fixture passwords).
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        fixtures: Mapping[str, List[Record]] | None = None,
        *,
        on_seed: SeedHook | None = None,
    ) -> None:
        self._storage = storage
        self._fixtures = fixtures
        self._on_seed = on_seed

    @property
    def storage(self) -> KeyValueStorage:
        return self._storage

    # --- seeding ---------------------------------------------------------------

    def _seed_records(self, collection: Collection) -> List[Record]:
        if not self._fixtures:
            return []
        seeded = []
        for rec in self._fixtures.get(collection.value, []):
            item = normalize_fields(collection, copy.deepcopy(rec))
            if self._on_seed is not None:
                item = self._on_seed(collection.value, item)
            seeded.append(item)
        return seeded

    def initialize(self) -> None:
        """Seed every collection whose key is absent. Idempotent."""
        for collection in Collection:
            if self._storage.get_item(collection.storage_key) is None:
                records = self._seed_records(collection)
                self._write(collection, records)
                logger.info("Seeded collection=%s count=%d", collection.value, len(records))

    # --- raw access ------------------------------------------------------------

    def _read(self, collection: Collection) -> List[Record]:
        raw = self._storage.get_item(collection.storage_key)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            data = None
        if not isinstance(data, list):
            logger.warning("Corrupt collection reset collection=%s", collection.value)
            self._storage.remove_item(collection.storage_key)
            records = self._seed_records(collection)
            self._write(collection, records)
            return records
        return [r for r in data if isinstance(r, dict)]

    def _write(self, collection: Collection, records: List[Record]) -> None:
        self._storage.set_item(collection.storage_key, json.dumps(records, ensure_ascii=False))

    # --- public API ------------------------------------------------------------

    def get_all(self, collection: "Collection | str") -> List[Record]:
        return self._read(as_collection(collection))

    def get_by_id(self, collection: "Collection | str", record_id: Any) -> Optional[Record]:
        for rec in self._read(as_collection(collection)):
            if _same_id(rec.get("id"), record_id):
                return rec
        return None

    def add(self, collection: "Collection | str", record: Mapping[str, Any]) -> Record:
        """Append `record` and return the stored copy.

        Raises DuplicateRecord when the id is already present and ValueError
        when the record has no id.
        """
        coll = as_collection(collection)
        item = normalize_fields(coll, copy.deepcopy(dict(record)))
        if item.get("id") in (None, ""):
            raise ValueError("missing_id")
        records = self._read(coll)
        if any(_same_id(r.get("id"), item["id"]) for r in records):
            raise DuplicateRecord(f"{coll.value}:{item['id']}")
        records.append(item)
        self._write(coll, records)
        return copy.deepcopy(item)

    @staticmethod
    def _next_id(records: List[Record]) -> int:
        # millisecond timestamp, bumped past ids already taken
        nid = int(time.time() * 1000)
        taken = {r.get("id") for r in records}
        while nid in taken:
            nid += 1
        return nid

    def add_with_new_id(self, collection: "Collection | str", record: Mapping[str, Any]) -> Record:
        """Append `record` under a store-assigned numeric id."""
        coll = as_collection(collection)
        records = self._read(coll)
        item = normalize_fields(coll, copy.deepcopy(dict(record)))
        item["id"] = self._next_id(records)
        records.append(item)
        self._write(coll, records)
        return copy.deepcopy(item)

    def add_notice(self, notice: Mapping[str, Any]) -> Record:
        """Create a notice with a store-assigned id and date, newest first."""
        notices = self._read(Collection.NOTICES)
        item = normalize_fields(Collection.NOTICES, dict(notice))
        item["id"] = self._next_id(notices)
        item["date"] = date.today().isoformat()
        notices.insert(0, item)
        self._write(Collection.NOTICES, notices)
        return copy.deepcopy(item)

    def update(self, collection: "Collection | str", record: Mapping[str, Any]) -> bool:
        """Replace the record with the same id; False when the id is unknown."""
        coll = as_collection(collection)
        item = normalize_fields(coll, copy.deepcopy(dict(record)))
        records = self._read(coll)
        for index, existing in enumerate(records):
            if _same_id(existing.get("id"), item.get("id")):
                records[index] = item
                self._write(coll, records)
                return True
        return False

    def delete(self, collection: "Collection | str", record_id: Any) -> bool:
        """Remove all entries with `record_id`; True when anything was removed."""
        coll = as_collection(collection)
        records = self._read(coll)
        kept = [r for r in records if not _same_id(r.get("id"), record_id)]
        if len(kept) == len(records):
            return False
        self._write(coll, kept)
        return True

    def get_students_by_class(self, grade_level: str) -> List[Record]:
        return [s for s in self._read(Collection.STUDENTS) if s.get("grade_level") == grade_level]


__all__ = [
    "Collection",
    "IDENTITY_COLLECTIONS",
    "Record",
    "RecordStore",
    "as_collection",
    "normalize_fields",
]
