"""
attendance_components.py

Small Streamlit building blocks: the filter bar and the card panels.
"""

from __future__ import annotations

import datetime as dt
from contextlib import contextmanager
from typing import Callable, Iterator

import streamlit as st

from attendance_models import COURSE_OPTIONS, FilterState


def filter_bar(
    state: FilterState,
    on_date_change: Callable[[dt.date], None],
    on_course_change: Callable[[str], None],
    key_prefix: str = "filters",
) -> None:
    """
    Date picker + course select box in one row.

    The widgets are seeded from `state` the first time they render; after that
    every change is handed to the callbacks and the caller owns the values.
    """
    date_key = f"{key_prefix}_date"
    course_key = f"{key_prefix}_course"
    if date_key not in st.session_state:
        st.session_state[date_key] = state.selected_date
    if course_key not in st.session_state:
        st.session_state[course_key] = state.selected_course

    def _date_changed() -> None:
        value = st.session_state[date_key]
        if value is not None:
            on_date_change(value)

    def _course_changed() -> None:
        on_course_change(st.session_state[course_key])

    with st.container(border=True):
        date_col, course_col, _ = st.columns([1, 1, 2])
        date_col.date_input(
            "📅 Date",
            key=date_key,
            format="YYYY-MM-DD",
            on_change=_date_changed,
        )
        course_col.selectbox(
            "🕒 Course",
            options=COURSE_OPTIONS,
            key=course_key,
            on_change=_course_changed,
        )


def reset_filter_bar(key_prefix: str = "filters") -> None:
    # Next render re-seeds the widgets from the caller's state.
    st.session_state.pop(f"{key_prefix}_date", None)
    st.session_state.pop(f"{key_prefix}_course", None)


@contextmanager
def dashboard_card(title: str) -> Iterator[None]:
    card = st.container(border=True)
    card.markdown(f"**{title}**")
    with card:
        yield


def stat_card(title: str, value: int, caption: str, color: str = "#16a34a") -> None:
    with dashboard_card(title):
        st.markdown(
            f"<div style='font-size:2.25rem;font-weight:700;color:{color}'>{value}</div>",
            unsafe_allow_html=True,
        )
        st.caption(caption)
