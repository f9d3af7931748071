"""Entity facades over the hosted or local store."""

from .base import EntityFacade, matches, parse_sort, sort_records
from .errors import DuplicateRecordError, NotFoundError, ValidationError
from .evaluations import (
    SCORE_OPTIONS,
    TIME_SLOT_KEYS,
    TIME_SLOT_LABELS,
    TIME_SLOTS,
    invalid_scores,
    normalize_daily_evaluation,
    normalize_time_slots,
    prepare_daily_evaluation_for_save,
)
from .hosted import HostedEntityFacade
from .local import LocalEntityFacade
from .models import ENTITY_SPECS, EntitySpec
from .service import DataService, create_data_service

__all__ = [
    "EntityFacade",
    "LocalEntityFacade",
    "HostedEntityFacade",
    "DataService",
    "create_data_service",
    "EntitySpec",
    "ENTITY_SPECS",
    "ValidationError",
    "NotFoundError",
    "DuplicateRecordError",
    "matches",
    "parse_sort",
    "sort_records",
    "TIME_SLOTS",
    "TIME_SLOT_KEYS",
    "TIME_SLOT_LABELS",
    "SCORE_OPTIONS",
    "invalid_scores",
    "normalize_daily_evaluation",
    "normalize_time_slots",
    "prepare_daily_evaluation_for_save",
]
