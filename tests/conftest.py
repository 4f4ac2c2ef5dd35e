import datetime as dt

import pytest

from attendance_models import AttendanceRecord

DAY = dt.date(2026, 10, 19)


def make_record(course="Java", name="Asha", section="A", timings="9:00-10:00", timestamp="2026-10-19T09:15:00"):
    return AttendanceRecord(
        course=course,
        name=name,
        section=section,
        timings=timings,
        timestamp=timestamp,
    )


def raw_record(**overrides):
    rec = {
        "course": "Java",
        "name": "Asha",
        "section": "A",
        "timings": "9:00-10:00",
        "timestamp": "2026-10-19T09:15:00",
    }
    rec.update(overrides)
    return rec


@pytest.fixture
def day():
    return DAY


@pytest.fixture
def three_records():
    return [
        make_record(course="Java", name="Asha", timings="9:00-10:00"),
        make_record(course="Java", name="Ben", timings="11:00-12:00"),
        make_record(course="iOS", name="Chen", timings="9:00-10:00"),
    ]
