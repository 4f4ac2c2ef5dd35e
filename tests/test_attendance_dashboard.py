from __future__ import annotations

import datetime as dt

import pytest
import streamlit as st
from streamlit.testing.v1 import AppTest

import attendance_feed
from attendance_feed import LOAD_ERROR_MESSAGE, FeedState
from conftest import raw_record

APP = "../attendance_dashboard.py"


class FakeFeed:
    """Stands in for FeedSubscription; tests push snapshots into `state` directly."""

    endpoint = "https://demo.firebaseio.com/student-details.json"
    state = FeedState()

    def __init__(self, url, path=None, auth=None):
        pass

    def start(self):
        return self

    def close(self):
        pass


def today_record(**overrides):
    return raw_record(timestamp=f"{dt.date.today().isoformat()}T09:15:00", **overrides)


def stat_value(at, title):
    values = [m.value for m in at.markdown]
    body = values[values.index(f"**{title}**") + 1]
    return int(body.split(">")[1].split("<")[0])


@pytest.fixture(autouse=True)
def fresh_resources():
    st.cache_resource.clear()
    yield
    st.cache_resource.clear()


@pytest.fixture
def feed(monkeypatch):
    monkeypatch.setattr(attendance_feed, "FEED_URL", "https://demo.firebaseio.com")
    monkeypatch.setattr(FakeFeed, "state", FeedState())
    monkeypatch.setattr(attendance_feed, "FeedSubscription", FakeFeed)
    return FakeFeed.state


def test_missing_feed_url_shows_configuration_error(monkeypatch):
    monkeypatch.setattr(attendance_feed, "FEED_URL", "")

    at = AppTest.from_file(APP).run()

    assert not at.exception
    assert "ATTENDANCE_FEED_URL" in at.error[0].value


def test_decode_failure_shows_only_the_error_panel(feed):
    feed.apply_snapshot({"k": {"course": "Java"}})

    at = AppTest.from_file(APP).run()

    assert not at.exception
    assert at.error[0].value == LOAD_ERROR_MESSAGE
    assert len(at.selectbox) == 0


def test_filter_bar_drives_the_totals(feed):
    feed.apply_snapshot({
        "a": today_record(course="Java", name="Asha"),
        "b": today_record(course="Java", name="Ben", timings="11:00-12:00"),
        "c": today_record(course="iOS", name="Chen"),
    })

    at = AppTest.from_file(APP).run()
    assert not at.exception
    assert at.selectbox[0].value == "All Courses"
    assert at.date_input[0].value == dt.date.today()
    assert stat_value(at, "Total Attendance") == 3
    assert stat_value(at, "Active Courses") == 2

    at.selectbox[0].select("Java").run()
    assert stat_value(at, "Total Attendance") == 2
    assert stat_value(at, "Active Courses") == 1

    at.date_input[0].set_value(dt.date(2020, 1, 1)).run()
    assert stat_value(at, "Total Attendance") == 0
    assert stat_value(at, "Active Courses") == 0


def test_page_recovers_after_a_bad_snapshot(feed):
    feed.apply_snapshot({"k": {"course": "Java"}})

    at = AppTest.from_file(APP).run()
    assert at.error[0].value == LOAD_ERROR_MESSAGE

    feed.apply_snapshot({"a": today_record(course="ADB")})
    at.run()

    assert not at.exception
    assert len(at.error) == 0
    assert stat_value(at, "Total Attendance") == 1
