"""Run identifiers and dotted-order composition.

A dotted order is a string whose lexicographic order matches both the
structure of the trace tree (ancestors before descendants) and the start
order of siblings. Each run contributes one segment
``<YYYYmmddTHHMMSSffffff>Z<run-id>``; a child's dotted order is its
parent's dotted order, a ``.``, and its own segment.
"""

import threading
import uuid
from datetime import datetime, timedelta, timezone

DOTTED_ORDER_SEPARATOR = "."
# The year is formatted separately: strftime("%Y") is not zero-padded below 1000 on glibc.
TIMESTAMP_FORMAT = "%m%dT%H%M%S%f"
TIMESTAMP_WIDTH = 21

_clock_lock = threading.Lock()
_last_start: datetime | None = None


def new_run_id() -> str:
    """Mint a fresh run identifier (random UUID4 string)."""
    return str(uuid.uuid4())


def next_start_time() -> datetime:
    """Current UTC time, strictly later than any previously returned value.

    Two spans started within the same microsecond would otherwise get equal
    timestamps and be ordered by their random run ids instead of start order.
    """
    global _last_start
    now = datetime.now(timezone.utc)
    with _clock_lock:
        if _last_start is not None and now <= _last_start:
            now = _last_start + timedelta(microseconds=1)
        _last_start = now
    return now


def format_timestamp(t: datetime) -> str:
    """Encode a timestamp as fixed-width, sortable UTC text.

    Naive datetimes are taken to be UTC already.

    Args:
        t: Timestamp to encode.

    Returns:
        21-character string such as ``20250101T120000123456``.
    """
    if t.tzinfo is None:
        t = t.replace(tzinfo=timezone.utc)
    else:
        t = t.astimezone(timezone.utc)
    return f"{t.year:04d}{t.strftime(TIMESTAMP_FORMAT)}"


def compose_dotted_order(parent_order: str | None, t: datetime, run_id: str) -> str:
    """Build the dotted order of a run.

    Args:
        parent_order: Dotted order of the enclosing run, or empty at the root.
        t: Start time of the run.
        run_id: Identifier of the run.

    Returns:
        The run's full dotted order.
    """
    segment = f"{format_timestamp(t)}Z{run_id}"
    if parent_order:
        return f"{parent_order}{DOTTED_ORDER_SEPARATOR}{segment}"
    return segment


def parse_dotted_order(order: str) -> list[tuple[str, str]]:
    """Split a dotted order into (timestamp, run_id) pairs, root first.

    Args:
        order: Dotted order string.

    Returns:
        One pair per tree level.

    Raises:
        ValueError: If a segment is not ``<timestamp>Z<run-id>``.
    """
    if not order:
        return []

    segments = []
    for segment in order.split(DOTTED_ORDER_SEPARATOR):
        stamp, sep, run_id = segment.partition("Z")
        if not sep or len(stamp) != TIMESTAMP_WIDTH or not run_id:
            raise ValueError(f"Malformed dotted order segment: {segment!r}")
        segments.append((stamp, run_id))
    return segments


def is_ancestor(ancestor: str, descendant: str) -> bool:
    """Return True if ``ancestor`` is a strict ancestor of ``descendant``."""
    return bool(ancestor) and descendant.startswith(ancestor + DOTTED_ORDER_SEPARATOR)
