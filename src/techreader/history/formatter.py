from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from .query import HistoryEntry

NO_HISTORY_MESSAGE = "No browsing history found."
VISIT_TIME_FORMAT = "%Y/%m/%d %H:%M:%S"


def format_entry(entry: HistoryEntry) -> str:
    visited = entry.visit_time_local.strftime(VISIT_TIME_FORMAT)
    return f"## {entry.title}\n  - URL: {entry.url}\n  - Visited At: {visited}\n"


def format_history(entries: Iterable[HistoryEntry]) -> str:
    text = "\n".join(format_entry(entry) for entry in entries)
    return text or NO_HISTORY_MESSAGE


def tool_response(text: str, *, is_error: bool = False) -> dict[str, Any]:
    """Uniform tool result: the same text as a content block and as ``result``."""
    response: dict[str, Any] = {
        "content": [{"type": "text", "text": text}],
        "structuredContent": {"result": text},
    }
    if is_error:
        response["isError"] = True
    return response
