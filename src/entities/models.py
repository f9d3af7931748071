"""Record models and per-collection rules for Bright Track entities.

Records travel as plain dicts. The pydantic models below check that the
fields a form would insist on are present and non-blank, and that evaluation
scores are valid ratings; any other keys are allowed through untouched.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from src.storage import entity_store as collections

from .errors import ValidationError
from .evaluations import SCORE_OPTIONS, invalid_scores

RecordId = Union[int, str]


class _Record(BaseModel):
    model_config = ConfigDict(extra="allow")


def _not_blank(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        raise ValueError("must not be blank")
    return value


class StudentRecord(_Record):
    """A student on a dashboard."""

    student_name: str
    grade_level: Optional[Union[str, int]] = None
    teacher_name: Optional[str] = None
    active: bool = True
    dashboard_id: Optional[int] = None

    check_name = field_validator("student_name")(_not_blank)


class DailyEvaluationRecord(_Record):
    """One student's ratings for one school day, keyed by time slot."""

    student_id: RecordId
    date: str
    time_slots: Dict[str, Any] = {}
    general_comments: Optional[str] = None

    check_fields = field_validator("student_id", "date")(_not_blank)

    @field_validator("time_slots")
    @classmethod
    def check_scores(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        bad = invalid_scores(value)
        if bad:
            raise ValueError(f"scores must be one of {', '.join(SCORE_OPTIONS)} (got {', '.join(bad)})")
        return value


class IncidentReportRecord(_Record):
    student_id: RecordId
    incident_date: str
    incident_type: str
    incident_summary: Optional[str] = None

    check_fields = field_validator("student_id", "incident_date", "incident_type")(_not_blank)


class ContactLogRecord(_Record):
    student_id: RecordId
    contact_date: str
    contact_person_name: Optional[str] = None
    contact_category: Optional[str] = None
    outcome_of_contact: Optional[str] = None

    check_fields = field_validator("student_id", "contact_date")(_not_blank)


class BehaviorSummaryRecord(_Record):
    student_id: RecordId
    date_range_end: str
    date_range_start: Optional[str] = None
    prepared_by: Optional[str] = None

    check_fields = field_validator("student_id", "date_range_end")(_not_blank)


class DashboardRecord(_Record):
    name: str

    check_name = field_validator("name")(_not_blank)


class SettingsRecord(_Record):
    pass


@dataclass(frozen=True)
class EntitySpec:
    """Rules for one collection.

    Attributes:
        collection: Collection / table name.
        model: Model that create and update payloads must satisfy.
        unique_key: Fields whose combined values identify at most one record.
        defaults: Values filled in on create when the caller leaves them out.
        date_column: Date field used for range summaries, if any.
        serial_id: Assign increasing integer ids locally, as the hosted table does.
    """

    collection: str
    model: Type[BaseModel]
    unique_key: Tuple[str, ...] = ()
    defaults: Dict[str, Any] = field(default_factory=dict)
    date_column: Optional[str] = None
    serial_id: bool = False

    def validate(self, record: Dict[str, Any]) -> None:
        """Raise ``ValidationError`` naming each missing, blank or malformed field."""
        try:
            self.model.model_validate(record)
        except PydanticValidationError as e:
            errors = e.errors()
            names = tuple(".".join(str(p) for p in err["loc"]) for err in errors)
            reasons = "; ".join(f"{name}: {err['msg']}" for name, err in zip(names, errors))
            raise ValidationError(f"Invalid {self.collection} record ({reasons})", fields=names) from e

    def key_of(self, record: Dict[str, Any]) -> Optional[Tuple[Any, ...]]:
        if not self.unique_key:
            return None
        return tuple(record.get(name) for name in self.unique_key)


STUDENT = EntitySpec(collections.STUDENTS, StudentRecord, defaults={"active": True})
DAILY_EVALUATION = EntitySpec(
    collections.DAILY_EVALUATIONS,
    DailyEvaluationRecord,
    unique_key=("student_id", "date"),
    date_column="date",
)
SETTINGS = EntitySpec(collections.SETTINGS, SettingsRecord)
CONTACT_LOG = EntitySpec(collections.CONTACT_LOGS, ContactLogRecord, date_column="contact_date")
BEHAVIOR_SUMMARY = EntitySpec(
    collections.BEHAVIOR_SUMMARIES,
    BehaviorSummaryRecord,
    unique_key=("student_id", "date_range_end"),
    date_column="date_range_end",
)
INCIDENT_REPORT = EntitySpec(
    collections.INCIDENT_REPORTS, IncidentReportRecord, date_column="incident_date"
)
DASHBOARD = EntitySpec(collections.DASHBOARDS, DashboardRecord, serial_id=True)

ENTITY_SPECS = (
    STUDENT,
    DAILY_EVALUATION,
    SETTINGS,
    CONTACT_LOG,
    BEHAVIOR_SUMMARY,
    INCIDENT_REPORT,
    DASHBOARD,
)

# Collections holding rows that belong to a student
STUDENT_CHILDREN = (DAILY_EVALUATION, INCIDENT_REPORT, CONTACT_LOG, BEHAVIOR_SUMMARY)
