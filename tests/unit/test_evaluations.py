"""Tests for daily evaluation slot normalization."""

import pytest

from src.entities.evaluations import (
    TIME_SLOT_KEYS,
    TIME_SLOT_LABELS,
    invalid_scores,
    normalize_daily_evaluation,
    normalize_slot,
    normalize_time_slots,
    prepare_daily_evaluation_for_save,
    prepare_time_slots_for_save,
)

pytestmark = pytest.mark.unit


class TestSchedule:
    def test_seven_slots_in_school_day_order(self):
        assert TIME_SLOT_KEYS == ("8:30", "9:15", "10:00", "10:45", "11:30", "1:00", "1:45")
        assert TIME_SLOT_LABELS["11:30"] == "11:30 AM - 1:00 PM"


class TestNormalizeSlot:
    def test_aliases(self):
        slot = {"adultInteraction": "4", "peer_interaction": "3", "classroomExpectations": 2, "notes": " ok "}
        assert normalize_slot(slot) == {"ai": "4", "pi": "3", "ce": "2", "comment": "ok"}

    def test_legacy_rating_fills_every_section(self):
        assert normalize_slot({"rating": 3}) == {"ai": "3", "pi": "3", "ce": "3"}

    def test_rating_ignored_when_sections_present(self):
        assert normalize_slot({"ai": "4", "rating": 1}) == {"ai": "4"}

    def test_blank_values_dropped(self):
        assert normalize_slot({"ai": "  ", "comment": ""}) == {}

    @pytest.mark.parametrize("slot", [None, "4", ["4"]])
    def test_non_mapping(self, slot):
        assert normalize_slot(slot) == {}


class TestNormalizeTimeSlots:
    def test_legacy_keys_mapped_in_numeric_order(self):
        raw = {
            "period_2": {"rating": 3},
            "period_10": {"ai": "1"},
            "period_1": {"ai": "4", "pi": "4", "ce": "3"},
        }
        normalized = normalize_time_slots(raw)
        assert list(normalized) == ["8:30", "9:15", "10:00"]
        assert normalized["8:30"] == {"ai": "4", "pi": "4", "ce": "3"}
        assert normalized["9:15"] == {"ai": "3", "pi": "3", "ce": "3"}
        assert normalized["10:00"] == {"ai": "1"}

    def test_current_keys_win_over_legacy(self):
        raw = {
            "9:15": {"ai": "2"},
            "period_1": {"ai": "1"},
            "8:30": {"ai": "4"},
            "extra": {"pi": "3"},
        }
        assert list(normalize_time_slots(raw)) == ["8:30", "9:15", "extra"]

    @pytest.mark.parametrize("raw", [None, {}, [], "8:30"])
    def test_empty_or_invalid(self, raw):
        assert normalize_time_slots(raw) == {}


class TestNormalizeDailyEvaluation:
    def test_general_comment_aliases(self):
        evaluation = normalize_daily_evaluation({"id": 1, "comments": " good day "})
        assert evaluation["general_comments"] == "good day"
        assert evaluation["time_slots"] == {}
        assert evaluation["id"] == 1

    def test_missing_comments_become_empty(self):
        assert normalize_daily_evaluation({"time_slots": None})["general_comments"] == ""

    def test_non_mapping_passes_through(self):
        assert normalize_daily_evaluation(None) is None


class TestPrepareForSave:
    def test_drops_empty_slots(self):
        slots = {"8:30": {"ai": "4", "pi": ""}, "9:15": {"ai": " "}, "10:00": {}}
        assert prepare_time_slots_for_save(slots) == {"8:30": {"ai": "4"}}

    def test_general_comment_fallback(self):
        prepared = prepare_daily_evaluation_for_save({"student_id": "s1", "general_comment": "hi"})
        assert prepared["general_comments"] == "hi"
        assert prepared["time_slots"] == {}

    def test_keeps_explicit_general_comments(self):
        prepared = prepare_daily_evaluation_for_save({"general_comments": "", "general_comment": "old"})
        assert prepared["general_comments"] == ""


class TestInvalidScores:
    def test_allowed_scores_pass(self):
        slots = {
            "8:30": {"ai": "4", "pi": "1", "ce": "NS"},
            "9:15": {"ai": "A", "pi": "B", "ce": 3, "comment": "anything goes here"},
        }
        assert invalid_scores(slots) == []

    def test_blank_sections_are_unrated(self):
        assert invalid_scores({"8:30": {"ai": "", "pi": None, "ce": "  "}}) == []

    def test_reports_each_bad_score(self):
        slots = {"8:30": {"ai": "9", "pi": "0", "ce": "-3"}, "9:15": {"ai": "4", "pi": "ns"}}
        assert invalid_scores(slots) == ["8:30.ai=9", "8:30.pi=0", "8:30.ce=-3", "9:15.pi=ns"]

    @pytest.mark.parametrize("slots", [None, [], {"8:30": "4"}])
    def test_ignores_malformed_shapes(self, slots):
        assert invalid_scores(slots) == []
