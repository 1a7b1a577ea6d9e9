"""Local Chrome history extraction: locate, snapshot, query, format."""
from __future__ import annotations

from .errors import (
    CopyFailed,
    HistoryError,
    IdentityResolutionFailed,
    OpenFailed,
    QueryFailed,
    SourceNotFound,
    UnsupportedPlatform,
)
from .formatter import NO_HISTORY_MESSAGE, format_history, tool_response
from .platform import OsKind, PlatformProfile, resolve_history_path, resolve_profile
from .query import WEBKIT_EPOCH_OFFSET_MS, HistoryEntry, query_recent_history, to_unix_ms, to_webkit
from .reader import read_today_history
from .snapshot import SnapshotHandle, sweep_stale_snapshots, take_snapshot

__all__ = [
    "CopyFailed",
    "HistoryEntry",
    "HistoryError",
    "IdentityResolutionFailed",
    "NO_HISTORY_MESSAGE",
    "OpenFailed",
    "OsKind",
    "PlatformProfile",
    "QueryFailed",
    "SnapshotHandle",
    "SourceNotFound",
    "UnsupportedPlatform",
    "WEBKIT_EPOCH_OFFSET_MS",
    "format_history",
    "query_recent_history",
    "read_today_history",
    "resolve_history_path",
    "resolve_profile",
    "take_snapshot",
    "sweep_stale_snapshots",
    "to_unix_ms",
    "to_webkit",
    "tool_response",
]
