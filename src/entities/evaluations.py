"""Daily evaluation time slots and record normalization.

Evaluations written by older forms store ratings under ``period_1``/``slot_2``
style keys, single ``rating`` scores instead of the three behavior sections,
and comments under several names. ``normalize_daily_evaluation`` maps all of
that onto the current shape::

    {"time_slots": {"8:30": {"ai": "4", "pi": "3", "ce": "4", "comment": "..."}},
     "general_comments": "..."}
"""

import re
from typing import Any, Dict, List, Optional, Tuple

TIME_SLOTS: List[Dict[str, str]] = [
    {"key": "8:30", "label": "8:30 AM - 9:15 AM"},
    {"key": "9:15", "label": "9:15 AM - 10:00 AM"},
    {"key": "10:00", "label": "10:00 AM - 10:45 AM"},
    {"key": "10:45", "label": "10:45 AM - 11:30 AM"},
    {"key": "11:30", "label": "11:30 AM - 1:00 PM"},
    {"key": "1:00", "label": "1:00 PM - 1:45 PM"},
    {"key": "1:45", "label": "1:45 PM - 2:30 PM"},
]
TIME_SLOT_KEYS: Tuple[str, ...] = tuple(slot["key"] for slot in TIME_SLOTS)
TIME_SLOT_LABELS: Dict[str, str] = {slot["key"]: slot["label"] for slot in TIME_SLOTS}

SECTION_KEYS = ("ai", "pi", "ce")

# allowed section scores, best first; letters are non-numeric codes
SCORE_OPTIONS = ("4", "3", "2", "1", "A", "B", "NS")

SECTION_ALIASES = {
    "ai": ("ai", "adultInteraction", "adult_interaction"),
    "pi": ("pi", "peerInteraction", "peer_interaction"),
    "ce": ("ce", "classroomExpectations", "classroom_expectations"),
}
COMMENT_ALIASES = ("comment", "comments", "note", "notes", "observations", "summary", "detail")
RATING_ALIASES = ("rating", "score", "value", "total")
GENERAL_COMMENT_ALIASES = ("general_comments", "general_comment", "comments", "notes")

LEGACY_SLOT_PATTERN = re.compile(r"^(?:period|slot)[_\-\s]?(\d+)", re.IGNORECASE)


def _clean(value: Any) -> Optional[str]:
    """Trimmed string form of ``value``, or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _first_present(mapping: Dict[str, Any], keys) -> Any:
    for key in keys:
        if mapping.get(key) is not None:
            return mapping[key]
    return None


def normalize_slot(slot: Any) -> Dict[str, str]:
    if not isinstance(slot, dict):
        return {}

    normalized: Dict[str, str] = {}
    for section, aliases in SECTION_ALIASES.items():
        value = _clean(_first_present(slot, aliases))
        if value:
            normalized[section] = value

    if not normalized:
        rating = _clean(_first_present(slot, RATING_ALIASES))
        if rating:
            # single legacy score counts for every section
            normalized = {section: rating for section in SECTION_KEYS}

    comment = _clean(_first_present(slot, COMMENT_ALIASES))
    if comment:
        normalized["comment"] = comment
    return normalized


def _legacy_order(key: str) -> float:
    match = LEGACY_SLOT_PATTERN.match(key)
    return int(match.group(1)) if match else float("inf")


def normalize_time_slots(raw_slots: Any) -> Dict[str, Dict[str, str]]:
    """Normalize a ``time_slots`` mapping.

    Legacy numbered keys are mapped onto ``TIME_SLOT_KEYS`` in numeric order
    when no current keys are present. Otherwise current keys come first in
    schedule order, followed by any other non-legacy keys as they appear.
    """
    if not isinstance(raw_slots, dict) or not raw_slots:
        return {}

    has_current_keys = any(raw_slots.get(key) is not None for key in TIME_SLOT_KEYS)
    legacy = [(k, v) for k, v in raw_slots.items() if LEGACY_SLOT_PATTERN.match(k)]

    if not has_current_keys and legacy:
        legacy.sort(key=lambda item: _legacy_order(item[0]))
        normalized = {}
        for index, (legacy_key, value) in enumerate(legacy):
            target = TIME_SLOT_KEYS[index] if index < len(TIME_SLOT_KEYS) else legacy_key
            normalized[target] = normalize_slot(value)
        return normalized

    normalized = {}
    for key in TIME_SLOT_KEYS:
        if raw_slots.get(key) is not None:
            normalized[key] = normalize_slot(raw_slots[key])
    for key, value in raw_slots.items():
        if key in normalized or LEGACY_SLOT_PATTERN.match(key):
            continue
        normalized[key] = normalize_slot(value)
    return normalized


def normalize_daily_evaluation(evaluation: Any) -> Any:
    """Copy of ``evaluation`` with normalized slots and ``general_comments``."""
    if not isinstance(evaluation, dict):
        return evaluation
    return {
        **evaluation,
        "time_slots": normalize_time_slots(evaluation.get("time_slots")),
        "general_comments": _clean(_first_present(evaluation, GENERAL_COMMENT_ALIASES)) or "",
    }


def prepare_time_slots_for_save(slots: Any) -> Dict[str, Dict[str, str]]:
    """Normalized slots with empty sections, comments and slots dropped."""
    cleaned = {}
    for key, value in normalize_time_slots(slots).items():
        slot = {name: value[name] for name in (*SECTION_KEYS, "comment") if _clean(value.get(name))}
        if slot:
            cleaned[key] = slot
    return cleaned


def prepare_daily_evaluation_for_save(evaluation: Any) -> Any:
    if not isinstance(evaluation, dict):
        return evaluation
    prepared = {**evaluation, "time_slots": prepare_time_slots_for_save(evaluation.get("time_slots"))}
    if "general_comments" not in prepared and evaluation.get("general_comment"):
        prepared["general_comments"] = evaluation["general_comment"]
    return prepared


def invalid_scores(slots: Any) -> List[str]:
    """``"slot.section=value"`` for every section score outside ``SCORE_OPTIONS``.

    Blank sections are unrated and pass.
    """
    if not isinstance(slots, dict):
        return []
    problems = []
    for key, slot in slots.items():
        if not isinstance(slot, dict):
            continue
        for section in SECTION_KEYS:
            value = _clean(slot.get(section))
            if value is not None and value not in SCORE_OPTIONS:
                problems.append(f"{key}.{section}={value}")
    return problems
