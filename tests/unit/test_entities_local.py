"""Tests for the local entity facades."""

import pytest

from src.entities import (
    DuplicateRecordError,
    LocalEntityFacade,
    NotFoundError,
    ValidationError,
    matches,
    parse_sort,
    sort_records,
)
from src.entities.models import BEHAVIOR_SUMMARY, DAILY_EVALUATION, DASHBOARD, STUDENT
from src.storage import EntityStore, MemoryKeyValueStore, StorageError

pytestmark = pytest.mark.unit


@pytest.fixture
def students(memory_store: EntityStore) -> LocalEntityFacade:
    return LocalEntityFacade(STUDENT, memory_store)


@pytest.fixture
def evaluations(memory_store: EntityStore) -> LocalEntityFacade:
    return LocalEntityFacade(DAILY_EVALUATION, memory_store)


class TestSortAndMatch:
    def test_parse_sort(self):
        assert parse_sort("name") == ("name", False)
        assert parse_sort("-date") == ("date", True)
        assert parse_sort(None) is None
        assert parse_sort("") is None

    def test_sort_none_keeps_order(self):
        records = [{"n": 2}, {"n": 1}]
        assert sort_records(records, None) == [{"n": 2}, {"n": 1}]

    def test_missing_values_sort_last(self):
        records = [{"n": None}, {"n": 2}, {}, {"n": 1}]
        assert [r.get("n") for r in sort_records(records, "n")] == [1, 2, None, None]
        assert [r.get("n") for r in sort_records(records, "-n")] == [2, 1, None, None]

    def test_sort_is_stable(self):
        records = [{"g": 1, "i": "a"}, {"g": 0, "i": "b"}, {"g": 1, "i": "c"}]
        assert [r["i"] for r in sort_records(records, "g")] == ["b", "a", "c"]

    def test_matches_requires_key(self):
        assert matches({"dashboard_id": None}, {"dashboard_id": None})
        assert not matches({}, {"dashboard_id": None})

    def test_matches_is_strict_about_booleans(self):
        assert not matches({"active": 1}, {"active": True})
        assert matches({"active": True}, {"active": True})


class TestCreate:
    def test_assigns_id_and_timestamps(self, students: LocalEntityFacade):
        created = students.create({"student_name": "Eloy"})
        assert created["id"]
        assert created["created_at"] == created["updated_at"]
        assert created["active"] is True
        assert students.get(created["id"]) == created

    def test_ids_are_unique(self, students: LocalEntityFacade):
        ids = {students.create({"student_name": f"S{i}"})["id"] for i in range(25)}
        assert len(ids) == 25

    def test_keeps_supplied_id(self, students: LocalEntityFacade):
        created = students.create({"id": "student-1", "student_name": "Chance"})
        assert created["id"] == "student-1"

    def test_duplicate_supplied_id(self, students: LocalEntityFacade):
        students.create({"id": "student-1", "student_name": "Chance"})
        with pytest.raises(DuplicateRecordError):
            students.create({"id": "student-1", "student_name": "Other"})

    def test_blank_required_field(self, students: LocalEntityFacade):
        with pytest.raises(ValidationError) as exc:
            students.create({"student_name": "   "})
        assert "student_name" in exc.value.fields

    def test_missing_required_field(self, evaluations: LocalEntityFacade):
        with pytest.raises(ValidationError) as exc:
            evaluations.create({"student_id": "s1"})
        assert exc.value.fields == ("date",)

    def test_extra_fields_preserved(self, students: LocalEntityFacade):
        created = students.create({"student_name": "Jaden", "nickname": "J"})
        assert students.get(created["id"])["nickname"] == "J"

    def test_evaluation_unique_per_student_and_date(self, evaluations: LocalEntityFacade):
        evaluations.create({"student_id": "s1", "date": "2025-01-06"})
        evaluations.create({"student_id": "s2", "date": "2025-01-06"})
        with pytest.raises(DuplicateRecordError):
            evaluations.create({"student_id": "s1", "date": "2025-01-06"})

    def test_behavior_summary_unique_per_end_date(self, memory_store: EntityStore):
        summaries = LocalEntityFacade(BEHAVIOR_SUMMARY, memory_store)
        summaries.create({"student_id": "s1", "date_range_end": "2025-01-10"})
        with pytest.raises(DuplicateRecordError):
            summaries.create({"student_id": "s1", "date_range_end": "2025-01-10"})

    def test_dashboards_get_serial_ids(self, memory_store: EntityStore):
        dashboards = LocalEntityFacade(DASHBOARD, memory_store)
        assert dashboards.create({"name": "North"})["id"] == 1
        assert dashboards.create({"name": "South"})["id"] == 2
        dashboards.replace_all([{"id": 9, "name": "Imported"}])
        assert dashboards.create({"name": "West"})["id"] == 10

    def test_quota_exhaustion_raises(self):
        facade = LocalEntityFacade(DASHBOARD, EntityStore(MemoryKeyValueStore(max_bytes=20)))
        with pytest.raises(StorageError):
            facade.create({"name": "A dashboard name long enough to overflow"})
        assert facade.list() == []


class TestReadOperations:
    def test_filter_active_preserves_order(self, students: LocalEntityFacade):
        for name, active in [("A", True), ("B", False), ("C", True), ("D", False), ("E", True)]:
            students.create({"student_name": name, "active": active})

        result = students.filter({"active": True})

        assert [s["student_name"] for s in result] == ["A", "C", "E"]

    def test_filter_multiple_keys(self, evaluations: LocalEntityFacade):
        evaluations.create({"student_id": "s1", "date": "2025-01-06"})
        evaluations.create({"student_id": "s1", "date": "2025-01-07"})
        evaluations.create({"student_id": "s2", "date": "2025-01-07"})
        result = evaluations.filter({"student_id": "s1", "date": "2025-01-07"})
        assert len(result) == 1

    def test_list_sorted(self, students: LocalEntityFacade):
        for name in ["Paytin", "Curtis", "Jason"]:
            students.create({"student_name": name})
        assert [s["student_name"] for s in students.list("student_name")] == ["Curtis", "Jason", "Paytin"]
        assert [s["student_name"] for s in students.list("-student_name")] == ["Paytin", "Jason", "Curtis"]

    def test_get_compares_ids_as_strings(self, students: LocalEntityFacade):
        students.create({"id": 7, "student_name": "David"})
        assert students.get("7")["student_name"] == "David"

    def test_get_missing(self, students: LocalEntityFacade):
        assert students.get("nope") is None

    def test_count(self, students: LocalEntityFacade):
        students.create({"student_name": "A"})
        students.create({"student_name": "B"})
        assert students.count() == 2


class TestUpdate:
    def test_merges_patch(self, students: LocalEntityFacade):
        created = students.create({"student_name": "Eloy", "grade_level": "2nd Grade"})
        updated = students.update(created["id"], {"grade_level": "3rd Grade", "id": "ignored"})
        assert updated["id"] == created["id"]
        assert updated["student_name"] == "Eloy"
        assert updated["grade_level"] == "3rd Grade"
        assert students.get(created["id"])["grade_level"] == "3rd Grade"

    def test_missing_id(self, students: LocalEntityFacade):
        with pytest.raises(NotFoundError):
            students.update("nope", {"active": False})

    def test_cannot_blank_required_field(self, students: LocalEntityFacade):
        created = students.create({"student_name": "Eloy"})
        with pytest.raises(ValidationError):
            students.update(created["id"], {"student_name": ""})

    def test_cannot_move_onto_existing_key(self, evaluations: LocalEntityFacade):
        evaluations.create({"student_id": "s1", "date": "2025-01-06"})
        second = evaluations.create({"student_id": "s1", "date": "2025-01-07"})
        with pytest.raises(DuplicateRecordError):
            evaluations.update(second["id"], {"date": "2025-01-06"})

    def test_upsert_updates_existing_key(self, evaluations: LocalEntityFacade):
        first = evaluations.create({"student_id": "s1", "date": "2025-01-06", "general_comments": "ok"})
        saved = evaluations.upsert({"student_id": "s1", "date": "2025-01-06", "general_comments": "great"})
        assert saved["id"] == first["id"]
        assert evaluations.count() == 1
        assert evaluations.get(first["id"])["general_comments"] == "great"


class TestDelete:
    def test_delete_existing(self, students: LocalEntityFacade):
        created = students.create({"student_name": "Eloy"})
        assert students.delete(created["id"]) is True
        assert students.get(created["id"]) is None

    def test_delete_missing(self, students: LocalEntityFacade):
        assert students.delete("nope") is False

    def test_cascade_to_dependents(self, students: LocalEntityFacade, evaluations: LocalEntityFacade):
        students.add_dependent(evaluations, "student_id")
        keep = students.create({"student_name": "Keep"})
        gone = students.create({"student_name": "Gone"})
        evaluations.create({"student_id": gone["id"], "date": "2025-01-06"})
        evaluations.create({"student_id": gone["id"], "date": "2025-01-07"})
        evaluations.create({"student_id": keep["id"], "date": "2025-01-06"})

        students.delete(gone["id"])

        assert evaluations.filter({"student_id": gone["id"]}) == []
        assert len(evaluations.filter({"student_id": keep["id"]})) == 1

    def test_cascade_compares_ids_as_strings(self, students: LocalEntityFacade, evaluations: LocalEntityFacade):
        students.add_dependent(evaluations, "student_id")
        students.replace_all([{"id": 5, "student_name": "Integer id"}])
        evaluations.replace_all([
            {"id": "e1", "student_id": 5, "date": "2025-01-06"},
            {"id": "e2", "student_id": "5", "date": "2025-01-07"},
            {"id": "e3", "student_id": 50, "date": "2025-01-06"},
        ])

        assert students.delete("5") is True

        assert [e["id"] for e in evaluations.list()] == ["e3"]

    def test_delete_missing_leaves_dependents(self, students: LocalEntityFacade, evaluations: LocalEntityFacade):
        students.add_dependent(evaluations, "student_id")
        evaluations.create({"student_id": "ghost", "date": "2025-01-06"})
        assert students.delete("ghost") is False
        assert evaluations.count() == 1

    def test_delete_where(self, evaluations: LocalEntityFacade):
        evaluations.create({"student_id": "s1", "date": "2025-01-06"})
        evaluations.create({"student_id": "s1", "date": "2025-01-07"})
        assert evaluations.delete_where({"student_id": "s1"}) == 2
        assert evaluations.delete_where({"student_id": "s1"}) == 0

    def test_replace_all(self, students: LocalEntityFacade):
        students.create({"student_name": "Old"})
        assert students.replace_all([{"id": "x", "student_name": "New"}]) == 1
        assert students.list() == [{"active": True, "id": "x", "student_name": "New"}]
