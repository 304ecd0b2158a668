"""
Record store behavior over an in-memory key-value storage.
"""
from __future__ import annotations

import json
from datetime import date

import pytest

from backend.records.errors import DuplicateRecord
from backend.records.fixtures import SEED
from backend.records.store import Collection, RecordStore, normalize_fields
from backend.storage import keys
from backend.storage.memory import MemoryStorage


def test_initialize_seeds_every_collection(records: RecordStore, storage: MemoryStorage):
    for collection in Collection:
        assert storage.get_item(collection.storage_key) is not None
    assert [s["id"] for s in records.get_all("students")] == ["STU001", "STU002"]
    assert records.get_by_id("admins", "ADM001")["name"] == "Principal John Smith"


def test_seeded_identities_store_hashes_not_plaintext(records: RecordStore, storage: MemoryStorage):
    raw = storage.get_item(keys.ADMINS_KEY)
    assert "admin123" not in raw
    admin = records.get_by_id(Collection.ADMINS, "ADM001")
    assert "password" not in admin
    assert admin["password_hash"].startswith("$pbkdf2-sha256$")


def test_initialize_is_idempotent(records: RecordStore, storage: MemoryStorage):
    snapshot = {k: storage.get_item(k) for k in storage.keys()}
    records.add(Collection.TEACHERS, {"id": "TCH999", "name": "Extra"})
    records.initialize()
    records.initialize()
    assert records.get_by_id(Collection.TEACHERS, "TCH999") is not None
    for key, value in snapshot.items():
        if key != keys.TEACHERS_KEY:
            assert storage.get_item(key) == value


def test_initialize_keeps_existing_empty_collection():
    storage = MemoryStorage({keys.NOTICES_KEY: "[]"})
    store = RecordStore(storage, SEED)
    store.initialize()
    assert store.get_all(Collection.NOTICES) == []


def test_without_fixtures_collections_start_empty():
    store = RecordStore(MemoryStorage())
    store.initialize()
    assert all(store.get_all(c) == [] for c in Collection)


@pytest.mark.parametrize("collection", list(Collection))
def test_update_missing_id_returns_false_and_changes_nothing(records: RecordStore, storage, collection):
    before = storage.get_item(collection.storage_key)
    assert records.update(collection, {"id": "NOPE-404", "name": "Ghost"}) is False
    assert storage.get_item(collection.storage_key) == before


def test_update_replaces_record(records: RecordStore):
    student = records.get_by_id("students", "STU002")
    student["name"] = "Sarah W."
    assert records.update("students", student) is True
    assert records.get_by_id("students", "STU002")["name"] == "Sarah W."


def test_add_then_get_by_id_roundtrips(records: RecordStore):
    record = {"id": "STU003", "name": "Mia Chen", "role": "student", "grade_level": "9th Grade"}
    stored = records.add(Collection.STUDENTS, record)
    assert stored == record
    assert records.get_by_id(Collection.STUDENTS, "STU003") == record


def test_add_rejects_duplicate_and_missing_id(records: RecordStore):
    with pytest.raises(DuplicateRecord):
        records.add(Collection.STUDENTS, {"id": "STU001", "name": "Clone"})
    with pytest.raises(ValueError):
        records.add(Collection.STUDENTS, {"name": "Nobody"})
    assert len(records.get_all(Collection.STUDENTS)) == 2


def test_add_normalises_legacy_field_names(records: RecordStore):
    stored = records.add(Collection.STUDENTS, {"id": "STU010", "name": "Lee", "gradeLevel": "12th Grade"})
    assert stored["grade_level"] == "12th Grade"
    assert "gradeLevel" not in stored
    assert [s["id"] for s in records.get_students_by_class("12th Grade")] == ["STU010"]


def test_normalize_keeps_letter_grade_inside_results():
    record = {"id": "STU1", "grades": [{"subject": "Math", "grade": "A"}], "class": "10th Grade"}
    out = normalize_fields("students", record)
    assert out["grade_level"] == "10th Grade"
    assert out["grades"][0]["grade"] == "A"


def test_delete_removes_and_reports(records: RecordStore):
    assert records.delete(Collection.TEACHERS, "TCH002") is True
    assert records.get_by_id(Collection.TEACHERS, "TCH002") is None
    assert records.delete(Collection.TEACHERS, "TCH002") is False


def test_get_students_by_class(records: RecordStore):
    assert [s["id"] for s in records.get_students_by_class("10th Grade")] == ["STU001"]
    assert records.get_students_by_class("1st Grade") == []


def test_add_notice_assigns_id_and_date_and_prepends(records: RecordStore):
    first = records.add_notice({"title": "Sports Day", "content": "Friday", "priority": "low"})
    second = records.add_notice({"title": "Exam Week", "content": "Monday", "priority": "high"})
    assert isinstance(first["id"], int)
    assert second["id"] != first["id"]
    assert first["date"] == date.today().isoformat()
    notices = records.get_all(Collection.NOTICES)
    assert [n["title"] for n in notices[:2]] == ["Exam Week", "Sports Day"]
    assert records.get_by_id(Collection.NOTICES, str(second["id"]))["title"] == "Exam Week"


def test_corrupt_collection_is_reset_to_fixtures(records: RecordStore, storage: MemoryStorage):
    storage.set_item(keys.STUDENTS_KEY, "{broken")
    students = records.get_all(Collection.STUDENTS)
    assert [s["id"] for s in students] == ["STU001", "STU002"]
    assert json.loads(storage.get_item(keys.STUDENTS_KEY))[0]["id"] == "STU001"


def test_non_list_collection_is_reset(storage: MemoryStorage):
    storage.set_item(keys.NOTICES_KEY, json.dumps({"id": 1}))
    store = RecordStore(storage)
    assert store.get_all(Collection.NOTICES) == []
    assert storage.get_item(keys.NOTICES_KEY) == "[]"


def test_unknown_collection_raises(records: RecordStore):
    with pytest.raises(ValueError):
        records.get_all("parents")
