"""
attendance_feed.py

Live subscription to the attendance collection in a Firebase Realtime Database.

The REST streaming endpoint (Accept: text/event-stream) first sends a `put` with
the whole collection at path "/", then `put` / `patch` events for whatever
changed. We keep a local copy of the tree so FeedState always receives the
complete collection and the dashboard can replace its record list wholesale.

Key pieces:
- decode_snapshot(): {opaque key: record object} -> list[AttendanceRecord]
- FeedState: the single cell the subscription thread writes and the page reads
- FeedSubscription: background reader thread with a fixed reconnect delay
- fetch_snapshot(): one-shot read, used by feed_peek.py
"""

from __future__ import annotations

import datetime as dt
import json
import logging
import os
import textwrap
import threading
from typing import Any, Dict, Iterable, Iterator, List, NamedTuple, Optional, Tuple

import requests

from attendance_models import RECORD_FIELDS, AttendanceRecord

logger = logging.getLogger(__name__)

# ---------- CONFIG ----------

# Example: export ATTENDANCE_FEED_URL="https://my-project-default-rtdb.firebaseio.com"
FEED_URL = os.environ.get("ATTENDANCE_FEED_URL", "")
FEED_PATH = os.environ.get("ATTENDANCE_FEED_PATH", "student-details")
FEED_AUTH = os.environ.get("ATTENDANCE_FEED_AUTH") or None

CONNECT_TIMEOUT = 10
READ_TIMEOUT = 60  # server keep-alives arrive every 30s
RECONNECT_DELAY = 5

LOAD_ERROR_MESSAGE = "Error loading attendance data"

STATUS_LOADING = "loading"
STATUS_NORMAL = "normal"
STATUS_ERROR = "error"


class SnapshotDecodeError(ValueError):
    """The feed sent a snapshot that does not have the attendance record shape."""


class FeedError(RuntimeError):
    pass


def feed_url(base: str, path: str = FEED_PATH) -> str:
    """REST endpoint for a collection, e.g. https://x.firebaseio.com/student-details.json"""
    return f"{base.rstrip('/')}/{path.strip('/')}.json"


# ---------- DECODING ----------

def decode_record(key: Any, value: Any) -> AttendanceRecord:
    if not isinstance(value, dict):
        raise SnapshotDecodeError(
            f"record {key!r} is {type(value).__name__}, expected an object"
        )
    missing = [f for f in RECORD_FIELDS if f not in value]
    if missing:
        raise SnapshotDecodeError(f"record {key!r} is missing {', '.join(missing)}")
    # Numbers (e.g. section 1) are kept as text. The timestamp stays as sent;
    # one that is not a date string is dropped later by the date filter.
    fields = {f: value[f] if f == "timestamp" else str(value[f]) for f in RECORD_FIELDS}
    return AttendanceRecord(**fields)


def decode_snapshot(payload: Any) -> Optional[List[AttendanceRecord]]:
    """
    Turn one collection snapshot into records, dropping the keys.

    Returns None when the collection is empty (null payload), which callers
    treat as "nothing new". Firebase serves collections whose keys look like
    array indices as JSON arrays with nulls for the gaps, so lists are accepted
    too.
    """
    if not payload:
        return None

    if isinstance(payload, dict):
        items = list(payload.items())
    elif isinstance(payload, list):
        items = [(i, v) for i, v in enumerate(payload) if v is not None]
    else:
        raise SnapshotDecodeError(
            f"snapshot is {type(payload).__name__}, expected an object of records"
        )

    return [decode_record(key, value) for key, value in items]


# ---------- SHARED STATE ----------

class FeedView(NamedTuple):
    records: Tuple[AttendanceRecord, ...]
    error: Optional[str]
    status: str
    version: int
    updated_at: Optional[dt.datetime]


class FeedState:
    """
    Latest known attendance records plus the load status.

    Exactly one writer (the subscription thread) and any number of readers
    (script runs). The lock keeps each read consistent with a single write.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: Tuple[AttendanceRecord, ...] = ()
        self._error: Optional[str] = None
        self._status = STATUS_LOADING
        self._version = 0
        self._updated_at: Optional[dt.datetime] = None

    def apply_snapshot(self, payload: Any) -> bool:
        """Replace the records from a full snapshot. Returns True if they changed."""
        try:
            records = decode_snapshot(payload)
        except SnapshotDecodeError:
            logger.exception("Could not decode attendance snapshot")
            self.fail(LOAD_ERROR_MESSAGE)
            return False

        if records is None:
            return False

        with self._lock:
            self._records = tuple(records)
            self._error = None
            self._status = STATUS_NORMAL
            self._touch()
        return True

    def fail(self, message: str) -> None:
        # Records are left as they were; the next good snapshot clears this.
        with self._lock:
            self._error = message
            self._status = STATUS_ERROR
            self._touch()

    def view(self) -> FeedView:
        with self._lock:
            return FeedView(
                records=self._records,
                error=self._error,
                status=self._status,
                version=self._version,
                updated_at=self._updated_at,
            )

    @property
    def records(self) -> Tuple[AttendanceRecord, ...]:
        return self.view().records

    @property
    def error(self) -> Optional[str]:
        return self.view().error

    @property
    def status(self) -> str:
        return self.view().status

    def _touch(self) -> None:
        self._version += 1
        self._updated_at = dt.datetime.now()


# ---------- STREAM PROTOCOL ----------

def _as_dict(node: Any) -> Dict[str, Any]:
    if isinstance(node, dict):
        return node
    if isinstance(node, list):
        return {str(i): v for i, v in enumerate(node) if v is not None}
    return {}


def _set_path(node: Any, keys: List[str], data: Any) -> Any:
    if not keys:
        return data
    node = _as_dict(node)
    head, rest = keys[0], keys[1:]
    child = _set_path(node.get(head), rest, data)
    if child is None or child == {}:
        node.pop(head, None)
    else:
        node[head] = child
    return node or None


def apply_event(tree: Any, path: str, data: Any, merge: bool = False) -> Any:
    """
    Apply one `put` (merge=False) or `patch` (merge=True) event to the local tree.

    Returns the new tree; None means the collection is now empty.
    """
    keys = [k for k in path.split("/") if k]
    if not merge:
        return _set_path(tree, keys, data)

    if not isinstance(data, dict):
        raise SnapshotDecodeError(
            f"patch at {path!r} carries {type(data).__name__}, expected an object"
        )
    for child_path, value in data.items():
        child_keys = keys + [k for k in str(child_path).split("/") if k]
        tree = _set_path(tree, child_keys, value)
    return tree


def iter_sse_events(lines: Iterable[Any]) -> Iterator[Tuple[str, str]]:
    """Parse text/event-stream lines into (event, data) pairs."""
    event: Optional[str] = None
    data: List[str] = []

    for line in lines:
        if isinstance(line, bytes):
            line = line.decode("utf-8")
        line = line.rstrip("\r")

        if not line:
            if event is not None or data:
                yield event or "message", "\n".join(data)
            event, data = None, []
            continue

        if line.startswith(":"):
            continue

        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            event = value
        elif name == "data":
            data.append(value)
    # An event without its terminating blank line is incomplete and dropped.


# ---------- SUBSCRIPTION ----------

class FeedSubscription:
    """
    Keeps one streaming connection open and pushes full snapshots into a FeedState.

    Runs on a daemon thread. close() drops the connection and stops the thread;
    connection errors are logged and retried after `reconnect_delay` seconds.
    """

    def __init__(
        self,
        url: str,
        path: str = FEED_PATH,
        auth: Optional[str] = None,
        state: Optional[FeedState] = None,
        session: Optional[requests.Session] = None,
        reconnect_delay: float = RECONNECT_DELAY,
    ) -> None:
        self.endpoint = feed_url(url, path)
        self.auth = auth
        self.state = state if state is not None else FeedState()
        self.session = session if session is not None else requests.Session()
        self.reconnect_delay = reconnect_delay

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._response: Optional[requests.Response] = None
        self._tree: Any = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def closed(self) -> bool:
        return self._stop.is_set()

    def start(self) -> "FeedSubscription":
        if self.running:
            return self
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="attendance-feed", daemon=True
        )
        self._thread.start()
        return self

    def close(self, timeout: float = 5.0) -> None:
        self._stop.set()
        response = self._response
        if response is not None:
            response.close()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self.session.close()

    def handle_event(self, event: str, data: str) -> bool:
        """Apply one stream event. Returns False when the server ended the stream."""
        if event in ("put", "patch"):
            try:
                message = json.loads(data)
                path, body = message["path"], message["data"]
            except (ValueError, KeyError, TypeError) as exc:
                logger.warning("Malformed %s event from attendance feed: %s", event, exc)
                self.state.fail(LOAD_ERROR_MESSAGE)
                return True

            try:
                self._tree = apply_event(self._tree, path, body, merge=event == "patch")
            except SnapshotDecodeError:
                logger.exception("Could not apply %s event at %s", event, path)
                self.state.fail(LOAD_ERROR_MESSAGE)
                return True

            self.state.apply_snapshot(self._tree)
            return True

        if event == "keep-alive":
            return True

        if event in ("cancel", "auth_revoked"):
            logger.error("Attendance feed closed by server (%s): %s", event, data)
            self.state.fail(LOAD_ERROR_MESSAGE)
            return False

        logger.debug("Ignoring attendance feed event %r", event)
        return True

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self._listen()
            except requests.RequestException as exc:
                if self._stop.is_set():
                    break
                logger.warning("Attendance feed connection failed: %s", exc)
            except Exception:
                if self._stop.is_set():
                    break
                logger.exception("Attendance feed listener crashed")

            if self._stop.wait(self.reconnect_delay):
                break
            logger.info("Reconnecting to attendance feed")

        logger.info("Attendance feed subscription closed")

    def _listen(self) -> None:
        params = {"auth": self.auth} if self.auth else None
        logger.info("Connecting to attendance feed %s", self.endpoint)
        response = self.session.get(
            self.endpoint,
            params=params,
            headers={"Accept": "text/event-stream"},
            stream=True,
            timeout=(CONNECT_TIMEOUT, READ_TIMEOUT),
        )
        self._response = response
        try:
            response.raise_for_status()
            response.encoding = "utf-8"
            # Every connection starts with a full put at "/".
            self._tree = None
            lines = response.iter_lines(decode_unicode=True)
            for event, data in iter_sse_events(lines):
                if self._stop.is_set():
                    return
                if not self.handle_event(event, data):
                    return
        finally:
            self._response = None
            response.close()


# ---------- ONE-SHOT READ ----------

def fetch_snapshot(
    url: str,
    path: str = FEED_PATH,
    auth: Optional[str] = None,
    timeout: float = 30,
) -> Any:
    """GET the whole collection once. Raises FeedError with a readable message."""
    endpoint = feed_url(url, path)
    params = {"auth": auth} if auth else None
    resp = requests.get(endpoint, params=params, timeout=timeout)

    try:
        resp.raise_for_status()
    except requests.HTTPError as e:
        preview = textwrap.shorten(resp.text.replace("\n", " "), width=300)
        raise FeedError(
            f"Attendance feed HTTP error. Status={resp.status_code}, URL={endpoint}. "
            f"Body preview: {preview}"
        ) from e

    try:
        return resp.json()
    except ValueError as e:
        preview = textwrap.shorten(resp.text.replace("\n", " "), width=300)
        raise FeedError(
            f"Attendance feed did not return valid JSON. URL={endpoint}, "
            f"Content-Type={resp.headers.get('Content-Type')!r}. Body preview: {preview}"
        ) from e
