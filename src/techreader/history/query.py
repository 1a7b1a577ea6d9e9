"""
Read-only queries against a snapshot of Chrome's History database.

Chrome stores ``urls.last_visit_time`` as microseconds since
1601-01-01T00:00:00Z (the WebKit epoch). Conversions to and from Unix
milliseconds use the fixed offset between the two epochs.
"""
from __future__ import annotations

import logging
import os
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from .errors import OpenFailed, QueryFailed

log = logging.getLogger(__name__)

# Milliseconds between 1601-01-01 and 1970-01-01.
WEBKIT_EPOCH_OFFSET_MS = 11644473600000

DEFAULT_LIMIT = 10
NO_TITLE = "No Title"

_RECENT_HISTORY_SQL = """
    SELECT title, url, last_visit_time
    FROM urls
    WHERE last_visit_time > ?
    ORDER BY last_visit_time DESC
    LIMIT ?
"""


@dataclass(frozen=True)
class HistoryEntry:
    title: str
    url: str
    visit_time_raw: int
    visit_time_local: datetime


def to_unix_ms(raw: int) -> int:
    return raw // 1000 - WEBKIT_EPOCH_OFFSET_MS


def to_webkit(unix_ms: int) -> int:
    return (unix_ms + WEBKIT_EPOCH_OFFSET_MS) * 1000


def to_local_datetime(raw: int) -> datetime:
    utc = datetime.fromtimestamp(to_unix_ms(raw) / 1000, tz=timezone.utc)
    return utc.astimezone()


def start_of_today_webkit(now: datetime | None = None) -> int:
    """WebKit timestamp of 00:00 on the current local calendar day."""
    current = datetime.now() if now is None else now
    midnight = current.replace(hour=0, minute=0, second=0, microsecond=0)
    return to_webkit(int(midnight.timestamp()) * 1000)


def normalize_limit(limit: object, default: int = DEFAULT_LIMIT) -> int:
    # bool is an int subclass; True must not become a limit of 1.
    if isinstance(limit, int) and not isinstance(limit, bool) and limit > 0:
        return limit
    return default


@contextmanager
def open_readonly(path: str | os.PathLike[str]) -> Iterator[sqlite3.Connection]:
    uri = f"{Path(path).resolve().as_uri()}?mode=ro"
    try:
        conn = sqlite3.connect(uri, uri=True)
    except sqlite3.Error as exc:
        raise OpenFailed(f"Could not open history copy {path}: {exc}") from exc
    try:
        try:
            # sqlite3 opens lazily; touch the header so a corrupt copy fails here.
            conn.execute("PRAGMA schema_version").fetchone()
        except sqlite3.Error as exc:
            raise OpenFailed(f"Could not open history copy {path}: {exc}") from exc
        yield conn
    finally:
        conn.close()
        log.debug("Closed SQLite connection to %s", path)


def _to_entry(row: tuple) -> HistoryEntry:
    title, url, raw = row
    if not isinstance(raw, int) or isinstance(raw, bool):
        raise QueryFailed(f"Malformed last_visit_time value: {raw!r}")
    try:
        visit_time_local = to_local_datetime(raw)
    except (ValueError, OverflowError, OSError) as exc:
        raise QueryFailed(f"Malformed last_visit_time value: {raw!r}") from exc
    return HistoryEntry(
        title=title or NO_TITLE,
        url=url,
        visit_time_raw=raw,
        visit_time_local=visit_time_local,
    )


def query_recent_history(
    snapshot_path: str | os.PathLike[str],
    since_raw: int,
    limit: object = None,
) -> list[HistoryEntry]:
    """Return visits newer than ``since_raw``, newest first, at most ``limit``."""
    bound = normalize_limit(limit)
    with open_readonly(snapshot_path) as conn:
        try:
            rows = conn.execute(_RECENT_HISTORY_SQL, (since_raw, bound)).fetchall()
        except sqlite3.Error as exc:
            raise QueryFailed(f"History query failed: {exc}") from exc
    return [_to_entry(row) for row in rows]
