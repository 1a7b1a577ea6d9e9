from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from techreader.history import (
    NO_HISTORY_MESSAGE,
    HistoryEntry,
    SourceNotFound,
    format_history,
    read_today_history,
    tool_response,
)
from techreader.history.errors import OpenFailed
from techreader.history.query import start_of_today_webkit
from techreader.history.snapshot import SNAPSHOT_PREFIX
from techreader.tools.chrome_history import ChromeHistoryTool
from techreader.tools.manager import ToolManager

_SECOND = 1_000_000
_NOW = datetime(2026, 10, 16, 15, 0, 0)


def _today_rows(now: datetime | None = None) -> tuple[list[tuple], list[int]]:
    start = start_of_today_webkit(now)
    t1, t2, t3 = start + 300 * _SECOND, start + 200 * _SECOND, start + 100 * _SECOND
    rows = [
        ("Second", "https://example.com/2", t2),
        ("Yesterday", "https://example.com/y", start - 3600 * _SECOND),
        ("First", "https://example.com/1", t1),
        ("Third", "https://example.com/3", t3),
    ]
    return rows, [t1, t2, t3]


def _leftovers(directory: Path) -> list[Path]:
    return list(directory.glob(f"{SNAPSHOT_PREFIX}*"))


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

def _entry(title: str, url: str, when: datetime) -> HistoryEntry:
    return HistoryEntry(title=title, url=url, visit_time_raw=0, visit_time_local=when)


def test_format_single_entry() -> None:
    text = format_history([_entry("Zenn", "https://zenn.dev", datetime(2026, 10, 16, 9, 5, 7))])
    assert text == "## Zenn\n  - URL: https://zenn.dev\n  - Visited At: 2026/10/16 09:05:07\n"


def test_format_entries_separated_by_blank_line() -> None:
    when = datetime(2026, 10, 16, 9, 0, 0, tzinfo=timezone.utc)
    text = format_history([_entry("A", "https://a.example", when), _entry("B", "https://b.example", when)])
    assert "https://a.example\n  - Visited At: 2026/10/16 09:00:00\n\n## B\n" in text
    assert text.count("## ") == 2


def test_format_empty() -> None:
    assert format_history([]) == NO_HISTORY_MESSAGE


def test_tool_response_shape() -> None:
    assert tool_response("hello") == {
        "content": [{"type": "text", "text": "hello"}],
        "structuredContent": {"result": "hello"},
    }
    assert tool_response("bad", is_error=True)["isError"] is True


# ---------------------------------------------------------------------------
# read_today_history
# ---------------------------------------------------------------------------

def test_today_only_in_descending_order(history_db, snapshot_dir: Path) -> None:
    rows, expected = _today_rows(_NOW)
    source = history_db(rows)

    entries = read_today_history(history_path=source, snapshot_dir=snapshot_dir, now=_NOW)

    assert [e.visit_time_raw for e in entries] == expected
    assert [e.title for e in entries] == ["First", "Second", "Third"]
    assert _leftovers(snapshot_dir) == []


def test_limit_applies_after_date_filter(history_db, snapshot_dir: Path) -> None:
    rows, expected = _today_rows(_NOW)
    entries = read_today_history(2, history_path=history_db(rows), snapshot_dir=snapshot_dir, now=_NOW)
    assert [e.visit_time_raw for e in entries] == expected[:2]


def test_default_limit_is_ten(history_db, snapshot_dir: Path) -> None:
    start = start_of_today_webkit(_NOW)
    rows = [(f"P{i}", f"https://example.com/{i}", start + i * _SECOND) for i in range(1, 25)]
    entries = read_today_history(history_path=history_db(rows), snapshot_dir=snapshot_dir, now=_NOW)
    assert len(entries) == 10
    entries = read_today_history(-1, history_path=history_db(rows, "History2"), snapshot_dir=snapshot_dir, now=_NOW)
    assert len(entries) == 10


def test_missing_source(tmp_path: Path, snapshot_dir: Path) -> None:
    missing = tmp_path / "Default" / "History"
    with pytest.raises(SourceNotFound) as exc:
        read_today_history(history_path=missing, snapshot_dir=snapshot_dir, now=_NOW)
    assert str(missing) in str(exc.value)
    assert _leftovers(snapshot_dir) == []


def test_snapshot_removed_after_open_failure(tmp_path: Path, snapshot_dir: Path) -> None:
    source = tmp_path / "History"
    source.write_bytes(b"garbage" * 1000)
    with pytest.raises(OpenFailed):
        read_today_history(history_path=source, snapshot_dir=snapshot_dir, now=_NOW)
    assert _leftovers(snapshot_dir) == []


def test_source_is_left_untouched(history_db, snapshot_dir: Path) -> None:
    rows, _ = _today_rows(_NOW)
    source = history_db(rows)
    before = source.read_bytes()
    read_today_history(history_path=source, snapshot_dir=snapshot_dir, now=_NOW)
    assert source.read_bytes() == before


# ---------------------------------------------------------------------------
# Tool boundary
# ---------------------------------------------------------------------------

def _manager(source: Path, snapshot_dir: Path, **extra) -> ToolManager:
    return ToolManager({"history_path": str(source), "snapshot_dir": str(snapshot_dir), **extra})


@pytest.mark.asyncio
async def test_tool_returns_identical_text_and_result(history_db, snapshot_dir: Path, frozen_today: int) -> None:
    rows, _ = _today_rows(_NOW)
    response = await _manager(history_db(rows), snapshot_dir).run_chrome_history()

    text = response["content"][0]["text"]
    assert response["content"][0]["type"] == "text"
    assert text == response["structuredContent"]["result"]
    assert "isError" not in response
    assert text.index("## First") < text.index("## Second") < text.index("## Third")
    assert "Yesterday" not in text


@pytest.mark.asyncio
async def test_tool_empty_history(history_db, snapshot_dir: Path, frozen_today: int) -> None:
    start = frozen_today
    source = history_db([("Old", "https://example.com/old", start - 86_400 * _SECOND)])
    response = await _manager(source, snapshot_dir).run_chrome_history(5)
    assert response["content"][0]["text"] == NO_HISTORY_MESSAGE
    assert response["structuredContent"]["result"] == NO_HISTORY_MESSAGE


@pytest.mark.asyncio
async def test_tool_missing_source_degrades_to_text(tmp_path: Path, snapshot_dir: Path) -> None:
    missing = tmp_path / "Default" / "History"
    response = await _manager(missing, snapshot_dir).run_chrome_history()

    text = response["content"][0]["text"]
    assert response["isError"] is True
    assert text == response["structuredContent"]["result"]
    assert str(missing) in text
    assert "not found" in text
    assert _leftovers(snapshot_dir) == []


@pytest.mark.asyncio
async def test_configured_default_limit(history_db, snapshot_dir: Path, frozen_today: int) -> None:
    start = frozen_today
    rows = [(f"P{i}", f"https://example.com/{i}", start + i * _SECOND) for i in range(1, 10)]
    response = await _manager(history_db(rows), snapshot_dir, history_limit=4).run_chrome_history()
    assert response["content"][0]["text"].count("## ") == 4


@pytest.mark.asyncio
async def test_concurrent_requests_do_not_collide(history_db, snapshot_dir: Path, frozen_today: int) -> None:
    rows, _ = _today_rows(_NOW)
    manager = _manager(history_db(rows), snapshot_dir)

    responses = await asyncio.gather(*(manager.run_chrome_history(2) for _ in range(6)))

    assert all("isError" not in r for r in responses)
    assert len({r["content"][0]["text"] for r in responses}) == 1
    assert _leftovers(snapshot_dir) == []


def test_yesterday_boundary_uses_local_midnight(history_db, snapshot_dir: Path) -> None:
    midnight = _NOW.replace(hour=0)
    start = start_of_today_webkit(_NOW)
    source = history_db([
        ("Just after midnight", "https://example.com/a", start + 1),
        ("Just before midnight", "https://example.com/b", start - 1),
    ])
    entries = read_today_history(history_path=source, snapshot_dir=snapshot_dir, now=_NOW)
    assert [e.title for e in entries] == ["Just after midnight"]
    assert entries[0].visit_time_local.replace(tzinfo=None) - midnight < timedelta(seconds=1)


@pytest.mark.asyncio
async def test_recent_honours_explicit_now(history_db, snapshot_dir: Path) -> None:
    rows, _ = _today_rows(_NOW)
    tool = ChromeHistoryTool(history_path=str(history_db(rows)), snapshot_dir=str(snapshot_dir))

    today = await tool.recent(10, now=_NOW)
    next_day = await tool.recent(10, now=_NOW + timedelta(days=1))

    assert today.count("## ") == 3
    assert next_day == NO_HISTORY_MESSAGE


@pytest.mark.asyncio
async def test_tool_out_of_range_timestamp_degrades_to_text(history_db, snapshot_dir: Path) -> None:
    source = history_db([("Far future", "https://example.com/far", 2**63 - 1)])
    response = await _manager(source, snapshot_dir).run_chrome_history()

    assert response["isError"] is True
    assert response["content"][0]["text"].startswith("Error reading Chrome history: Malformed last_visit_time")
    assert _leftovers(snapshot_dir) == []
