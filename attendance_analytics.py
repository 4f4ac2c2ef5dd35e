"""
attendance_analytics.py

Filtering and aggregation for the attendance dashboard.

Everything here is a pure function of (records, filter state) so the page can
recompute on every run:
- records_to_frame(): records -> DataFrame with a derived record_date column
- filter_records(): date + course filter
- course_counts() / time_counts(): the two chart aggregates
- summarize(): headline numbers for the stat cards
"""

from __future__ import annotations

import os
import re
from dataclasses import asdict, dataclass
from typing import Any, Iterable, Optional
from zoneinfo import ZoneInfo

import pandas as pd

from attendance_models import (
    COURSES,
    DATE_FORMAT,
    RECORD_FIELDS,
    AttendanceRecord,
    FilterState,
)

# ---------- CONFIG ----------

# Time zone used to bucket timezone-aware timestamps into calendar days.
# Unset means the machine's local zone.
DISPLAY_TZ = ZoneInfo(os.environ["ATTENDANCE_TZ"]) if os.environ.get("ATTENDANCE_TZ") else None

# A timestamp must start with a calendar date; bare times like "10:00" would
# otherwise parse as today.
ISO_DATE_PREFIX = re.compile(r"\s*\d{4}-\d{2}-\d{2}")


@dataclass(frozen=True)
class AttendanceSummary:
    total_students: int
    unique_courses: int


def record_date(timestamp: Any, tz: Optional[ZoneInfo] = None) -> Optional[str]:
    """
    Calendar date (yyyy-mm-dd) of a record timestamp, or None if it can't be parsed.

    Naive timestamps are taken as already local; aware ones are converted to
    `tz` (or the local zone) first so late-evening UTC records land on the
    right day.
    """
    if not isinstance(timestamp, str) or not ISO_DATE_PREFIX.match(timestamp):
        return None

    ts = pd.to_datetime(timestamp.strip(), format="ISO8601", errors="coerce")
    if pd.isna(ts):
        return None

    if ts.tzinfo is not None:
        if tz is not None:
            ts = ts.tz_convert(tz)
        else:
            ts = ts.to_pydatetime().astimezone()
    return ts.strftime(DATE_FORMAT)


def records_to_frame(
    records: Iterable[AttendanceRecord], tz: Optional[ZoneInfo] = DISPLAY_TZ
) -> pd.DataFrame:
    df = pd.DataFrame([asdict(r) for r in records], columns=list(RECORD_FIELDS))
    df["record_date"] = [record_date(v, tz) for v in df["timestamp"]]
    return df


def filter_records(df: pd.DataFrame, state: FilterState) -> pd.DataFrame:
    # Rows whose timestamp didn't parse have record_date None and never match.
    mask = df["record_date"] == state.date_key
    if not state.all_courses:
        mask &= df["course"] == state.selected_course
    return df[mask].reset_index(drop=True)


def course_counts(df: pd.DataFrame) -> pd.Series:
    """Counts for the fixed course list, in declared order. Other courses are ignored."""
    counts = df["course"].value_counts().reindex(COURSES, fill_value=0).astype(int)
    return counts.rename_axis("course").rename("count")


def time_counts(df: pd.DataFrame) -> pd.Series:
    labels = sorted(set(df["timings"]))
    counts = df["timings"].value_counts().reindex(labels, fill_value=0).astype(int)
    return counts.rename_axis("timings").rename("count")


def summarize(df: pd.DataFrame) -> AttendanceSummary:
    # Courses outside COURSES still count here even though the pie drops them.
    return AttendanceSummary(
        total_students=int(len(df)),
        unique_courses=int(df["course"].nunique()),
    )
