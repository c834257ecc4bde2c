# interview_console/services/listing.py
"""Client-side filtering and sorting of the interviews table."""
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from interview_console.contracts.models import Interview

ALL = "all"
# Select-box value standing for "field is blank".
EMPTY_VALUE = "__empty__"

SORT_FIELDS = ("guideName", "interviewer", "farmerName", "date", "village", "status")


@dataclass
class InterviewFilters:
    guide: str = ALL
    interviewer: str = ALL
    village: str = ALL
    farmer: str = ""
    status: str = ALL


def parse_date(value: str) -> float:
    if not value:
        return 0.0
    try:
        return pd.Timestamp(value).timestamp()
    except (ValueError, TypeError):
        return 0.0


def _match_choice(value: str, choice: str) -> bool:
    if not choice or choice == ALL:
        return True
    if choice == EMPTY_VALUE:
        return (value or "").strip() == ""
    return value == choice


def filter_interviews(interviews: Sequence[Interview], filters: InterviewFilters) -> List[Interview]:
    out = []
    farmer = filters.farmer.strip().lower()
    for i in interviews:
        if filters.guide and filters.guide != ALL and i.guide_id != filters.guide:
            continue
        if not _match_choice(i.interviewer, filters.interviewer):
            continue
        if not _match_choice(i.village, filters.village):
            continue
        if farmer and farmer not in i.farmer_name.lower():
            continue
        if filters.status and filters.status != ALL and i.status.label != filters.status:
            continue
        out.append(i)
    return out


def _sort_key(interview: Interview, field: str) -> Any:
    if field == "date":
        return parse_date(interview.date)
    if field == "status":
        return interview.status.label
    return {
        "guideName": interview.guide_name,
        "interviewer": interview.interviewer,
        "farmerName": interview.farmer_name,
        "village": interview.village,
    }[field]


def sort_interviews(interviews: Sequence[Interview], field: str = "date", order: str = "desc") -> List[Interview]:
    if field not in SORT_FIELDS:
        return list(interviews)
    return sorted(interviews, key=lambda i: _sort_key(i, field), reverse=(order == "desc"))


def filter_options(interviews: Sequence[Interview], field: str) -> List[Dict[str, str]]:
    """Distinct values of `interviewer` or `village` for a select box; blanks become "Unknown"."""
    values = sorted({(getattr(i, field) or "").strip() for i in interviews})
    return [{"value": v or EMPTY_VALUE, "label": v or "Unknown"} for v in values]


def describe_filters(filters: InterviewFilters) -> Optional[str]:
    parts = []
    for f in fields(filters):
        value = getattr(filters, f.name)
        if value and value != ALL:
            parts.append(f"{f.name}: {'Unknown' if value == EMPTY_VALUE else value}")
    return ", ".join(parts) or None


def interviews_frame(interviews: Sequence[Interview]) -> pd.DataFrame:
    rows = [
        {
            "id": i.id,
            "guide": i.guide_name,
            "interviewer": i.interviewer,
            "farmer": i.farmer_name,
            "village": i.village,
            "date": i.date,
            "status": i.status.label,
            "approved": i.status.human_approved,
            "audio_file": i.audio_file,
        }
        for i in interviews
    ]
    return pd.DataFrame(rows, columns=["id", "guide", "interviewer", "farmer", "village", "date",
                                       "status", "approved", "audio_file"])


def format_date(value: str) -> str:
    if not value:
        return ""
    try:
        return pd.Timestamp(value).strftime("%d %b %Y")
    except (ValueError, TypeError):
        return value


def format_timestamp(when: Optional[datetime] = None) -> str:
    return (when or datetime.now()).strftime("%d %b %Y, %H:%M:%S")
