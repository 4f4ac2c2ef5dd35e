"""
attendance_dashboard.py

Streamlit dashboard for live student attendance.

Key features:
- Subscribes to the attendance collection in a Firebase Realtime Database
  (ATTENDANCE_FEED_URL / ATTENDANCE_FEED_PATH), one subscription per process
- Filters by day and course ("All Courses" = no course filter)
- Headline cards: total attendance, active courses
- Pie chart of attendance by course, bar chart of attendance by time slot
- Page refreshes itself from the shared feed state every few seconds

Run with:
    streamlit run attendance_dashboard.py
"""

import atexit
import logging
import os

import pandas as pd
import streamlit as st

from attendance_analytics import (
    course_counts,
    filter_records,
    records_to_frame,
    summarize,
    time_counts,
)
from attendance_charts import course_pie_chart, time_bar_chart
from attendance_components import dashboard_card, filter_bar, reset_filter_bar, stat_card
from attendance_feed import (
    FEED_AUTH,
    FEED_PATH,
    FEED_URL,
    STATUS_ERROR,
    FeedState,
    FeedSubscription,
    FeedView,
)
from attendance_models import FilterState

logger = logging.getLogger(__name__)

REFRESH_SECONDS = float(os.environ.get("ATTENDANCE_REFRESH_SECONDS", "2"))


@st.cache_resource(show_spinner=False)
def get_feed(url: str, path: str, auth: str | None) -> FeedSubscription:
    subscription = FeedSubscription(url, path=path, auth=auth).start()
    atexit.register(subscription.close)
    logger.info("Started attendance feed subscription for %s", subscription.endpoint)
    return subscription


def load_data(view: FeedView) -> pd.DataFrame:
    """Records from the latest snapshot as a DataFrame, rebuilt only when the feed changes."""
    cached = st.session_state.get("_records_frame")
    if cached is not None and cached[0] == view.version:
        return cached[1]

    df = records_to_frame(view.records)
    st.session_state["_records_frame"] = (view.version, df)
    return df


def get_filter_state() -> FilterState:
    if "filter_state" not in st.session_state:
        st.session_state["filter_state"] = FilterState()
    return st.session_state["filter_state"]


def reset_filters() -> None:
    st.session_state["filter_state"] = FilterState()
    reset_filter_bar()


@st.fragment(run_every=REFRESH_SECONDS)
def render_dashboard(state: FeedState) -> None:
    view = state.view()

    if view.status == STATUS_ERROR:
        with dashboard_card("Error"):
            st.error(view.error)
        return

    filters = get_filter_state()

    def set_date(value):
        filters.selected_date = value

    def set_course(value):
        filters.selected_course = value

    filter_bar(filters, on_date_change=set_date, on_course_change=set_course)

    df = filter_records(load_data(view), filters)
    summary = summarize(df)

    cards = st.columns(4)
    with cards[0]:
        stat_card("Total Attendance", summary.total_students, "students present")
    with cards[1]:
        stat_card(
            "Active Courses",
            summary.unique_courses,
            "courses with attendance",
            color="#2563eb",
        )

    left, right = st.columns(2)
    with left:
        with dashboard_card("Attendance by Course"):
            st.altair_chart(course_pie_chart(course_counts(df)), width="stretch")
    with right:
        with dashboard_card("Attendance by Time"):
            st.altair_chart(time_bar_chart(time_counts(df)), width="stretch")

    with st.expander("Show filtered records"):
        st.dataframe(
            df[["name", "course", "section", "timings", "timestamp"]]
            .astype(str)
            .rename(
                columns={
                    "name": "Student",
                    "course": "Course",
                    "section": "Section",
                    "timings": "Timings",
                    "timestamp": "Timestamp",
                }
            ),
            width="stretch",
            hide_index=True,
        )

    if view.updated_at is not None:
        st.caption(
            f"{len(view.records)} records in feed · last update {view.updated_at:%H:%M:%S}"
        )


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    st.set_page_config(
        page_title="Attendance Analytics Dashboard",
        page_icon="🎓",
        layout="wide",
    )
    st.title("🎓 Attendance Analytics Dashboard")

    if not FEED_URL:
        st.error(
            "No attendance feed configured. Set ATTENDANCE_FEED_URL to the "
            "Realtime Database URL (e.g. https://my-project-default-rtdb.firebaseio.com)."
        )
        st.stop()

    st.sidebar.header("Feed")
    st.sidebar.caption(f"Collection: {FEED_PATH}")
    st.sidebar.button("Reset filters", on_click=reset_filters)

    feed = get_feed(FEED_URL, FEED_PATH, FEED_AUTH)
    render_dashboard(feed.state)


if __name__ == "__main__":
    main()
