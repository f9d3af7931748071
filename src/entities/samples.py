"""Demo records seeded into an empty local store."""

from datetime import date, timedelta
from typing import Any, Dict, List, Optional

SAMPLE_STUDENT_NAMES = (
    ("Chance", "3rd Grade"),
    ("Elijah", "4th Grade"),
    ("Eloy", "2nd Grade"),
    ("Emiliano (Nano)", "5th Grade"),
    ("Curtis", "1st Grade"),
    ("Jason", "3rd Grade"),
    ("Paytin", "2nd Grade"),
    ("Jaden", "4th Grade"),
    ("David", "5th Grade"),
    ("Theodore (TJ)", "1st Grade"),
)


def _days_ago(today: date, days: int) -> str:
    return (today - timedelta(days=days)).isoformat()


def sample_students() -> List[Dict[str, Any]]:
    return [
        {
            "id": f"student-{index}",
            "student_name": name,
            "grade_level": grade,
            "active": True,
        }
        for index, (name, grade) in enumerate(SAMPLE_STUDENT_NAMES, start=1)
    ]


def sample_settings() -> Dict[str, Any]:
    return {
        "id": "settings-1",
        "school_name": "Bright Track Elementary",
        "rating_scale": 4,
        "behavior_categories": [
            "Adult Interaction",
            "Peer Interaction",
            "Classroom Expectations",
        ],
    }


def sample_behavior_summaries(today: Optional[date] = None) -> List[Dict[str, Any]]:
    today = today or date.today()
    return [
        {
            "id": "summary-1",
            "student_id": "student-1",
            "date_range_start": _days_ago(today, 7),
            "date_range_end": today.isoformat(),
            "prepared_by": "Ms. Johnson",
            "general_behavior_overview": "Consistent positive behavior throughout the week.",
            "strengths": "Listens well and finishes work on time.",
            "improvements_needed": "Raise hand before speaking during discussions.",
        },
        {
            "id": "summary-2",
            "student_id": "student-2",
            "date_range_start": _days_ago(today, 7),
            "date_range_end": today.isoformat(),
            "prepared_by": "Ms. Johnson",
            "general_behavior_overview": "A difficult start to the week with improvement by Friday.",
            "strengths": "Creative problem solver, kind to younger students.",
            "improvements_needed": "Follow directions the first time they are given.",
        },
    ]


def sample_incident_reports(today: Optional[date] = None) -> List[Dict[str, Any]]:
    today = today or date.today()
    return [
        {
            "id": "incident-1",
            "student_id": "student-2",
            "incident_date": _days_ago(today, 2),
            "incident_time": "10:30 AM",
            "incident_type": "Disruptive Behavior",
            "incident_summary": "Talking out of turn during math instruction.",
            "staff_name": "Ms. Johnson",
            "location": "Classroom 3B",
        },
        {
            "id": "incident-2",
            "student_id": "student-3",
            "incident_date": _days_ago(today, 5),
            "incident_time": "1:15 PM",
            "incident_type": "Refusing Redirection",
            "incident_summary": "Refused to transition from lunch to the classroom.",
            "staff_name": "Ms. Johnson",
            "location": "Cafeteria",
        },
    ]
