"""Tests for DataService construction, cascades and data management."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from supabase import SupabaseException

from src.config import AppConfig, SupabaseConfig
from src.dashboard import DEFAULT_DASHBOARD_ID, SELECTED_STORAGE_KEY, DashboardContext, DashboardScopeResolver
from src.entities import (
    DataService,
    HostedEntityFacade,
    LocalEntityFacade,
    ValidationError,
    create_data_service,
)
from src.logutils import SensitiveValue
from src.storage import BrightTrackError, MemoryKeyValueStore

pytestmark = pytest.mark.unit


@pytest.fixture
def local_service(memory_kv: MemoryKeyValueStore, tmp_path: Path) -> DataService:
    return create_data_service(AppConfig(db_path=tmp_path / "unused.db"), kv=memory_kv)


@pytest.fixture
def hosted_service(fake_client) -> DataService:
    return create_data_service(AppConfig(), client=fake_client)


@pytest.fixture(params=["local", "hosted"])
def service(request, local_service, hosted_service) -> DataService:
    return local_service if request.param == "local" else hosted_service


class TestBackendSelection:
    def test_local_when_unconfigured(self, local_service: DataService):
        assert local_service.backend_name == "local"
        assert isinstance(local_service.students, LocalEntityFacade)
        assert local_service.store is not None

    def test_hosted_when_client_given(self, hosted_service: DataService):
        assert hosted_service.backend_name == "supabase"
        assert isinstance(hosted_service.daily_evaluations, HostedEntityFacade)
        assert hosted_service.store is None

    def test_hosted_when_configured(self):
        config = AppConfig(supabase=SupabaseConfig(url="https://demo.supabase.co", key=SensitiveValue("k")))
        with patch("src.backend.client.create_client") as create:
            service = create_data_service(config)
        assert service.backend_name == "supabase"
        assert service.students.client.rest_url == "https://demo.supabase.co/rest/v1"
        assert service.students.client.sdk is create.return_value

    def test_rejected_settings_fall_back_to_local(self, memory_kv):
        config = AppConfig(supabase=SupabaseConfig(url="https://demo.supabase.co", key=SensitiveValue("k")))
        with patch("src.backend.client.create_client", side_effect=SupabaseException("Invalid API key")):
            service = create_data_service(config, kv=memory_kv)
        assert service.backend_name == "local"

    def test_invalid_url_falls_back_to_local(self, memory_kv):
        config = AppConfig(supabase=SupabaseConfig(url="not-a-url", key=SensitiveValue("k")))
        assert create_data_service(config, kv=memory_kv).backend_name == "local"

    def test_every_collection_has_a_facade(self, local_service: DataService):
        for name in ("students", "daily_evaluations", "settings", "contact_logs",
                     "behavior_summaries", "incident_reports", "dashboards"):
            assert local_service.facade(name).name == name


class TestDeleteStudent:
    def test_removes_student_and_evaluations(self, service: DataService):
        student = service.students.create({"student_name": "Eloy"})
        other = service.students.create({"student_name": "Curtis"})
        service.daily_evaluations.create({"student_id": student["id"], "date": "2025-01-06"})
        service.daily_evaluations.create({"student_id": student["id"], "date": "2025-01-07"})
        service.daily_evaluations.create({"student_id": other["id"], "date": "2025-01-06"})

        assert service.delete_student(student["id"]) is True

        assert service.students.get(student["id"]) is None
        assert service.daily_evaluations.filter({"student_id": student["id"]}) == []
        assert len(service.daily_evaluations.filter({"student_id": other["id"]})) == 1

    def test_removes_every_child_collection(self, service: DataService):
        student = service.students.create({"student_name": "Jason"})
        sid = student["id"]
        service.incident_reports.create({"student_id": sid, "incident_date": "2025-01-06", "incident_type": "Other"})
        service.contact_logs.create({"student_id": sid, "contact_date": "2025-01-06"})
        service.behavior_summaries.create({"student_id": sid, "date_range_end": "2025-01-10"})

        service.delete_student(sid)

        for facade in (service.incident_reports, service.contact_logs, service.behavior_summaries):
            assert facade.filter({"student_id": sid}) == []

    def test_missing_student(self, service: DataService):
        assert service.delete_student("999999") is False

    def test_string_id_removes_children_of_imported_integer_id(self, local_service: DataService):
        assert local_service.import_data(json.dumps({
            "students": [{"id": 5, "student_name": "Ana"}, {"id": 6, "student_name": "Ben"}],
            "evaluations": [
                {"id": 1, "student_id": 5, "date": "2025-01-06"},
                {"id": 2, "student_id": 5, "date": "2025-01-07"},
                {"id": 3, "student_id": 6, "date": "2025-01-06"},
                {"id": 4, "student_id": "5", "date": "2025-01-08"},
            ],
            "incidentReports": [
                {"id": 1, "student_id": 5, "incident_date": "2025-01-06", "incident_type": "Other"},
            ],
        }))

        assert local_service.delete_student("5") is True

        assert local_service.students.get(5) is None
        assert [e["id"] for e in local_service.daily_evaluations.list()] == [3]
        assert local_service.incident_reports.count() == 0


class TestSaveHelpers:
    def test_save_behavior_summary_upserts(self, service: DataService):
        first = service.save_behavior_summary({"student_id": "s1", "date_range_end": "2025-01-10", "strengths": "a"})
        second = service.save_behavior_summary({"student_id": "s1", "date_range_end": "2025-01-10", "strengths": "b"})
        assert first["id"] == second["id"]
        assert service.behavior_summaries.count() == 1

    def test_save_daily_evaluation_normalizes_slots(self, local_service: DataService):
        saved = local_service.save_daily_evaluation({
            "student_id": "s1",
            "date": "2025-01-06",
            "time_slots": {"8:30": {"rating": 4, "notes": " calm "}, "9:15": {"ai": ""}},
        })
        assert saved["time_slots"] == {"8:30": {"ai": "4", "pi": "4", "ce": "4", "comment": "calm"}}

    def test_summaries_for(self, local_service: DataService):
        local_service.save_behavior_summary({"student_id": "s1", "date_range_end": "2025-01-10"})
        local_service.save_behavior_summary({"student_id": "s1", "date_range_end": "2025-01-03"})

        result = local_service.summaries_for(["s1", "s2"], "2025-01-10")

        assert result["s1"]["date_range_end"] == "2025-01-10"
        assert result["s2"] is None
        assert local_service.summaries_for([], "2025-01-10") == {}

    @pytest.mark.parametrize("scores", [
        {"ai": "9", "pi": "4", "ce": "4"},
        {"ai": "4", "pi": "0", "ce": "4"},
        {"ai": "4", "pi": "4", "ce": "-3"},
        {"rating": 5},
        {"ai": "C"},
    ])
    def test_save_daily_evaluation_rejects_out_of_range_scores(self, service: DataService, scores):
        with pytest.raises(ValidationError) as exc:
            service.save_daily_evaluation({"student_id": "s1", "date": "2025-01-06", "time_slots": {"8:30": scores}})
        assert exc.value.fields == ("time_slots",)
        assert service.daily_evaluations.count() == 0

    def test_save_daily_evaluation_accepts_codes(self, service: DataService):
        saved = service.save_daily_evaluation({
            "student_id": "s1",
            "date": "2025-01-06",
            "time_slots": {"8:30": {"ai": "A", "pi": "NS", "ce": "B"}, "9:15": {"ai": 1, "pi": "2", "ce": " 3 "}},
        })
        assert saved["time_slots"]["8:30"] == {"ai": "A", "pi": "NS", "ce": "B"}

    def test_update_cannot_store_invalid_score(self, service: DataService):
        saved = service.save_daily_evaluation({"student_id": "s1", "date": "2025-01-06"})
        with pytest.raises(ValidationError):
            service.daily_evaluations.update(saved["id"], {"time_slots": {"8:30": {"ai": "7"}}})


class TestDataManagement:
    def test_export_format(self, local_service: DataService):
        local_service.students.create({"student_name": "Eloy"})
        data = json.loads(local_service.export_data())
        assert data["version"] == "1.0"
        assert "exportDate" in data
        assert [s["student_name"] for s in data["students"]] == ["Eloy"]
        assert data["evaluations"] == []

    def test_export_import_round_trip(self, local_service: DataService, tmp_path: Path):
        student = local_service.students.create({"student_name": "Eloy"})
        local_service.daily_evaluations.create({"student_id": student["id"], "date": "2025-01-06"})
        exported = local_service.export_data()

        fresh = create_data_service(AppConfig(db_path=tmp_path / "x.db"), kv=MemoryKeyValueStore())
        assert fresh.import_data(exported) is True
        assert fresh.students.list() == local_service.students.list()
        assert fresh.daily_evaluations.count() == 1

    def test_import_rejects_invalid_json(self, local_service: DataService):
        assert local_service.import_data("{broken") is False
        assert local_service.import_data("[1, 2]") is False

    def test_import_leaves_omitted_collections(self, local_service: DataService):
        local_service.settings.create({"school_name": "Heartland"})
        assert local_service.import_data(json.dumps({"students": [{"id": "a", "student_name": "A"}]}))
        assert local_service.settings.count() == 1
        assert local_service.students.count() == 1

    def test_clear_all_data(self, local_service: DataService):
        local_service.students.create({"student_name": "Eloy"})
        local_service.clear_all_data()
        assert local_service.get_stats()["students"] == 0

    def test_clear_all_data_resets_dashboard_selection(self, local_service: DataService, memory_kv):
        north = local_service.dashboards.create({"name": "North"})
        context = DashboardContext(local_service.dashboards, kv=memory_kv)
        context.refresh_dashboards()
        context.set_selected_dashboard_id(north["id"])
        assert memory_kv.get(SELECTED_STORAGE_KEY) == str(north["id"])

        local_service.clear_all_data()

        assert memory_kv.get(SELECTED_STORAGE_KEY) is None
        assert DashboardContext(local_service.dashboards, kv=memory_kv).selected_dashboard_id == DEFAULT_DASHBOARD_ID

    def test_imported_students_appear_on_default_dashboard(self, local_service: DataService, memory_kv):
        assert local_service.import_data(json.dumps({"students": [
            {"id": "student-1", "student_name": "Ana", "active": True},
            {"id": "student-2", "student_name": "Ben"},
        ]}))
        context = DashboardContext(local_service.dashboards, kv=memory_kv)
        context.refresh_dashboards()
        resolver = DashboardScopeResolver.for_context(context)

        rows = local_service.students.filter(resolver.student_filter(), sort="student_name")

        assert [s["student_name"] for s in rows] == ["Ana", "Ben"]
        assert all(s["dashboard_id"] is None for s in rows)

    def test_clear_all_data_hosted_refused(self, hosted_service: DataService):
        with pytest.raises(BrightTrackError):
            hosted_service.clear_all_data()

    def test_get_stats(self, local_service: DataService):
        local_service.students.create({"student_name": "A"})
        stats = local_service.get_stats()
        assert stats["students"] == 1
        assert set(stats) == {
            "students", "daily_evaluations", "settings", "contact_logs",
            "behavior_summaries", "incident_reports", "dashboards",
        }

    def test_initialize_sample_data_only_when_empty(self, local_service: DataService):
        assert local_service.initialize_sample_data() is True
        seeded = local_service.get_stats()
        assert seeded["students"] == 10
        assert seeded["settings"] == 1

        assert local_service.initialize_sample_data() is False
        assert local_service.get_stats() == seeded

    def test_sample_students_are_on_default_dashboard(self, local_service: DataService):
        local_service.initialize_sample_data()
        assert len(local_service.students.filter({"active": True, "dashboard_id": None})) == 10

    def test_initialize_sample_data_skipped_when_hosted(self, hosted_service: DataService):
        assert hosted_service.initialize_sample_data() is False
