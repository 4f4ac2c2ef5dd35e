from __future__ import annotations

import pandas as pd

from attendance_analytics import course_counts, filter_records, records_to_frame, time_counts
from attendance_charts import CHART_HEIGHT, course_pie_chart, time_bar_chart
from attendance_models import COURSE_COLORS, COURSES, FilterState, TIME_BAR_COLOR


def test_pie_chart_uses_fixed_courses_and_palette(day, three_records):
    df = filter_records(records_to_frame(three_records), FilterState(selected_date=day))

    chart = course_pie_chart(course_counts(df))
    vl = chart.to_dict()

    assert chart.data["course"].tolist() == COURSES
    assert chart.data["count"].tolist() == [0, 0, 0, 2, 1, 0, 0]
    assert vl["encoding"]["color"]["scale"]["domain"] == COURSES
    assert vl["encoding"]["color"]["scale"]["range"] == COURSE_COLORS
    assert vl["height"] == CHART_HEIGHT


def test_bar_chart_follows_sorted_time_slots(day, three_records):
    df = filter_records(records_to_frame(three_records), FilterState(selected_date=day))

    chart = time_bar_chart(time_counts(df))
    vl = chart.to_dict()

    assert chart.data["timings"].tolist() == ["11:00-12:00", "9:00-10:00"]
    assert chart.data["count"].tolist() == [1, 2]
    assert vl["encoding"]["x"]["sort"] == ["11:00-12:00", "9:00-10:00"]
    assert vl["encoding"]["y"]["axis"]["tickMinStep"] == 1
    assert vl["mark"]["color"] == TIME_BAR_COLOR


def test_empty_aggregates_render_no_data_placeholder(day):
    df = filter_records(records_to_frame([]), FilterState(selected_date=day))

    for chart in (course_pie_chart(course_counts(df)), time_bar_chart(time_counts(df))):
        assert isinstance(chart.data, pd.DataFrame)
        assert chart.data["msg"].tolist() == ["No data"]
