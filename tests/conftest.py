from __future__ import annotations

import sqlite3
import sys
from contextlib import closing
from datetime import datetime
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

# Subset of Chrome's ``urls`` table; the columns the history tool reads are real.
_URLS_DDL = """
CREATE TABLE urls (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url LONGVARCHAR,
    title LONGVARCHAR,
    visit_count INTEGER DEFAULT 0 NOT NULL,
    typed_count INTEGER DEFAULT 0 NOT NULL,
    last_visit_time INTEGER NOT NULL,
    hidden INTEGER DEFAULT 0 NOT NULL
)
"""


def write_history_db(path: Path, rows: list[tuple]) -> Path:
    """Create a History-like database with ``(title, url, last_visit_time)`` rows."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with closing(sqlite3.connect(path)) as conn:
        conn.execute(_URLS_DDL)
        conn.executemany("INSERT INTO urls (title, url, last_visit_time) VALUES (?, ?, ?)", rows)
        conn.commit()
    return path


@pytest.fixture
def history_db(tmp_path: Path):
    def _make(rows: list[tuple], name: str = "History") -> Path:
        return write_history_db(tmp_path / "profile" / name, rows)

    return _make


@pytest.fixture
def snapshot_dir(tmp_path: Path) -> Path:
    path = tmp_path / "snapshots"
    path.mkdir()
    return path


FROZEN_NOW = datetime(2026, 10, 16, 15, 0, 0)


@pytest.fixture
def frozen_today(monkeypatch: pytest.MonkeyPatch) -> int:
    """Pin the reader's idea of "now"; returns the WebKit start of that day."""
    from techreader.history import reader
    from techreader.history.query import start_of_today_webkit

    monkeypatch.setattr(reader, "start_of_today_webkit", lambda now=None: start_of_today_webkit(now or FROZEN_NOW))
    return start_of_today_webkit(FROZEN_NOW)
