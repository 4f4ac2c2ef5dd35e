"""
attendance_charts.py

Altair chart builders for the attendance dashboard. Both take the Series
produced by attendance_analytics and return a chart ready for st.altair_chart.
"""

from __future__ import annotations

import altair as alt
import pandas as pd

from attendance_models import COURSE_COLORS, COURSES, TIME_BAR_COLOR

CHART_HEIGHT = 300


def no_data_chart() -> alt.Chart:
    return (
        alt.Chart(pd.DataFrame({"msg": ["No data"]}))
        .mark_text(fontSize=14, color="#6b7280")
        .encode(text="msg")
        .properties(height=CHART_HEIGHT)
    )


def course_pie_chart(counts: pd.Series) -> alt.Chart:
    df = counts.rename_axis("course").reset_index(name="count")
    if df["count"].sum() == 0:
        return no_data_chart()

    # Slice order follows the declared course list, not the counts.
    df["order"] = range(len(df))

    return (
        alt.Chart(df)
        .mark_arc(stroke="white")
        .encode(
            theta=alt.Theta("count:Q", stack=True),
            color=alt.Color(
                "course:N",
                scale=alt.Scale(domain=COURSES, range=COURSE_COLORS),
                sort=COURSES,
                legend=alt.Legend(title=None, orient="top"),
            ),
            order=alt.Order("order:Q"),
            tooltip=[
                alt.Tooltip("course:N", title="Course"),
                alt.Tooltip("count:Q", title="Students"),
            ],
        )
        .properties(height=CHART_HEIGHT)
    )


def time_bar_chart(counts: pd.Series) -> alt.Chart:
    df = counts.rename_axis("timings").reset_index(name="count")
    if df.empty:
        return no_data_chart()

    return (
        alt.Chart(df)
        .mark_bar(color=TIME_BAR_COLOR)
        .encode(
            x=alt.X(
                "timings:N",
                sort=df["timings"].tolist(),
                title="Time slot",
                axis=alt.Axis(labelAngle=0),
            ),
            y=alt.Y(
                "count:Q",
                title="Students",
                scale=alt.Scale(zero=True),
                axis=alt.Axis(tickMinStep=1, format="d"),
            ),
            tooltip=[
                alt.Tooltip("timings:N", title="Time slot"),
                alt.Tooltip("count:Q", title="Students"),
            ],
        )
        .properties(height=CHART_HEIGHT, title="Attendance by Time")
    )
