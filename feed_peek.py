"""
feed_peek.py

Fetch the attendance collection once and print what the dashboard would see.

    python feed_peek.py                 # today
    python feed_peek.py 2026-10-19      # another day
"""

import datetime as dt
import sys

from attendance_analytics import (
    course_counts,
    filter_records,
    records_to_frame,
    summarize,
    time_counts,
)
from attendance_feed import (
    FEED_AUTH,
    FEED_PATH,
    FEED_URL,
    SnapshotDecodeError,
    decode_snapshot,
    fetch_snapshot,
)
from attendance_models import FilterState


def main():
    if not FEED_URL:
        print("Set ATTENDANCE_FEED_URL first.")
        sys.exit(1)

    day = dt.date.fromisoformat(sys.argv[1]) if len(sys.argv) > 1 else dt.date.today()

    print(f"Requesting {FEED_PATH} from {FEED_URL} ...")
    raw = fetch_snapshot(FEED_URL, FEED_PATH, auth=FEED_AUTH)

    try:
        records = decode_snapshot(raw) or []
    except SnapshotDecodeError as e:
        print("❌ Snapshot does not decode:", e)
        sys.exit(1)

    print(f"✓ {len(records)} records in feed.")
    for rec in records[:10]:
        print(" ", rec.timestamp, rec.course, rec.section, rec.timings, rec.name)

    df = records_to_frame(records)
    unparsed = int(df["record_date"].isna().sum())
    if unparsed:
        print(f"⚠ {unparsed} records have a timestamp that does not parse.")

    filtered = filter_records(df, FilterState(selected_date=day))
    summary = summarize(filtered)
    print(f"\n=== {day.isoformat()} ===")
    print(f"Total attendance: {summary.total_students}")
    print(f"Active courses:   {summary.unique_courses}")
    print("\nBy course:")
    print(course_counts(filtered).to_string())
    print("\nBy time slot:")
    print(time_counts(filtered).to_string() if not filtered.empty else "(none)")


if __name__ == "__main__":
    main()
