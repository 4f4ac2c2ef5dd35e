"""
attendance_models.py

Shared record types and the fixed course catalogue for the attendance dashboard.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any


ALL_COURSES = "All Courses"

# Declared order drives the pie chart legend and the colour mapping.
COURSES = [
    "Android",
    "Patterns",
    "GDP-1",
    "Java",
    "iOS",
    "Web Applications",
    "ADB",
]
COURSE_OPTIONS = [ALL_COURSES] + COURSES

COURSE_COLORS = [
    "#FF6384",
    "#36A2EB",
    "#FFCE56",
    "#4BC0C0",
    "#9966FF",
    "#FF9F40",
    "#47B39C",
]
TIME_BAR_COLOR = "#4BC0C0"

RECORD_FIELDS = ("course", "name", "section", "timings", "timestamp")

DATE_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class AttendanceRecord:
    course: str
    name: str
    section: str
    timings: str
    timestamp: Any  # as sent by the feed; normally an ISO-8601 string


@dataclass
class FilterState:
    selected_date: dt.date = field(default_factory=dt.date.today)
    selected_course: str = ALL_COURSES

    @property
    def date_key(self) -> str:
        return self.selected_date.strftime(DATE_FORMAT)

    @property
    def all_courses(self) -> bool:
        return self.selected_course == ALL_COURSES
