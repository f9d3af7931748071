"""Behavior KPI computations."""

from .metrics import (
    average_from_slots,
    count_completed_slots,
    incident_type_breakdown,
    is_slot_completed,
    moving_average,
    rating_distribution,
    section_averages,
    section_values,
    to_letter_grade,
    total_slot_count,
)

__all__ = [
    "section_values",
    "is_slot_completed",
    "count_completed_slots",
    "average_from_slots",
    "section_averages",
    "total_slot_count",
    "rating_distribution",
    "incident_type_breakdown",
    "moving_average",
    "to_letter_grade",
]
