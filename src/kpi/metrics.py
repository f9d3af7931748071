"""Behavior KPI computations over daily evaluations and incidents.

Slots hold string scores per section (``ai``, ``pi``, ``ce``); ``"4"`` to
``"1"`` are numeric, ``"A"``/``"B"``/``"NS"`` are codes that count towards
completion but not towards averages.
"""

import math
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Sequence

from src.entities.evaluations import SECTION_KEYS, TIME_SLOT_KEYS

NUMERIC_RATINGS = ("1", "2", "3", "4")


def _has_value(value: Any) -> bool:
    return value is not None and bool(str(value).strip())


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_float(value: Any) -> Optional[float]:
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def round_half_up(value: float, places: int = 0) -> float:
    factor = 10 ** places
    return math.floor(value * factor + 0.5) / factor


def section_values(slot: Optional[Dict[str, Any]]) -> List[str]:
    """Non-blank section scores of a slot, or its numeric legacy rating."""
    if not slot:
        return []
    values = [str(slot[key]) for key in SECTION_KEYS if _has_value(slot.get(key))]
    if values:
        return values
    for legacy in ("rating", "score"):
        if _is_number(slot.get(legacy)):
            return [str(slot[legacy])]
    return []


def numeric_section_values(slot: Optional[Dict[str, Any]]) -> List[float]:
    return [n for n in (_to_float(v) for v in section_values(slot)) if n is not None]


def is_slot_completed(slot: Optional[Dict[str, Any]]) -> bool:
    """A slot is complete when every section is scored or it carries a status/score."""
    if not slot:
        return False
    if all(_has_value(slot.get(key)) for key in SECTION_KEYS):
        return True
    status = slot.get("status")
    if (isinstance(status, str) and status.strip()) or _is_number(status):
        return True
    if _is_number(slot.get("rating")) or _is_number(slot.get("score")):
        return True
    completed = slot.get("completed")
    return completed if isinstance(completed, bool) else False


def count_completed_slots(time_slots: Optional[Dict[str, Any]]) -> int:
    return sum(1 for slot in (time_slots or {}).values() if is_slot_completed(slot))


def average_from_slots(time_slots: Optional[Dict[str, Any]]) -> Dict[str, float]:
    """``{"average": ..., "count": ...}`` over every numeric score in every slot."""
    values = [n for slot in (time_slots or {}).values() for n in numeric_section_values(slot)]
    if not values:
        return {"average": 0, "count": 0}
    return {"average": sum(values) / len(values), "count": len(values)}


def section_averages(time_slots: Optional[Dict[str, Any]]) -> Dict[str, Dict[str, float]]:
    """Average per section; a slot with only a legacy rating counts it for all sections."""
    sums = {key: [0.0, 0] for key in SECTION_KEYS}

    for slot in (time_slots or {}).values():
        if not slot:
            continue
        captured = False
        for key in SECTION_KEYS:
            if not _has_value(slot.get(key)):
                continue
            number = _to_float(slot[key])
            if number is not None:
                sums[key][0] += number
                sums[key][1] += 1
                captured = True

        if not captured:
            fallback = slot.get("rating", slot.get("score"))
            number = _to_float(fallback) if fallback is not None else None
            if number is not None:
                for key in SECTION_KEYS:
                    sums[key][0] += number
                    sums[key][1] += 1

    return {
        key: {"average": total / count, "count": count} if count else {"average": 0, "count": 0}
        for key, (total, count) in sums.items()
    }


def total_slot_count(settings: Optional[Dict[str, Any]]) -> int:
    """Slots per day: from settings labels or slots when set, else the default schedule."""
    for key in ("time_slot_labels", "time_slots"):
        value = (settings or {}).get(key)
        if isinstance(value, list) and value:
            return len(value)
    return len(TIME_SLOT_KEYS)


def rating_distribution(evaluations: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Count and percentage of 1s to 4s across every section score."""
    counts: Counter = Counter()
    for evaluation in evaluations:
        for slot in (evaluation.get("time_slots") or {}).values():
            for value in section_values(slot):
                number = _to_float(value)
                if number is not None and number.is_integer() and str(int(number)) in NUMERIC_RATINGS:
                    counts[str(int(number))] += 1

    total = sum(counts.values())
    return [
        {
            "rating": f"{rating}'s",
            "count": counts[rating],
            "percentage": int(round_half_up(counts[rating] / total * 100)) if total else 0,
        }
        for rating in NUMERIC_RATINGS
    ]


def incident_type_breakdown(incidents: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Incidents grouped by type, in first-seen order, with whole-number percentages."""
    counts = Counter(incident.get("incident_type") for incident in incidents)
    total = sum(counts.values())
    return [
        {
            "type": incident_type,
            "count": count,
            "percentage": int(round_half_up(count / total * 100)) if total else 0,
        }
        for incident_type, count in counts.items()
    ]


def moving_average(values: Sequence[Optional[float]], window: int = 3) -> List[float]:
    """Trailing moving average; early points average what is available. None counts as 0."""
    if window < 1:
        raise ValueError("window must be at least 1")
    result = []
    for i in range(len(values)):
        chunk = values[max(0, i - window + 1):i + 1]
        total = sum(v or 0 for v in chunk)
        result.append(round_half_up(total / len(chunk), 2))
    return result


def to_letter_grade(score: Any) -> str:
    """Letter for a percentage score; ``""`` when the score is not a number."""
    number = _to_float(score) if not isinstance(score, bool) else None
    if number is None:
        return ""
    if number >= 90:
        return "A"
    if number >= 80:
        return "B"
    if number >= 70:
        return "C"
    if number >= 60:
        return "D"
    return "F"
