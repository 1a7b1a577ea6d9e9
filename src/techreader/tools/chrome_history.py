"""Client-side wrapper that runs the blocking history read off the event loop."""
from __future__ import annotations

import asyncio
from datetime import datetime

from ..history import format_history, read_today_history
from ..history.query import DEFAULT_LIMIT


class ChromeHistoryTool:
    def __init__(
        self,
        history_path: str = "",
        snapshot_dir: str = "",
        default_limit: int = DEFAULT_LIMIT,
    ) -> None:
        self.history_path = history_path
        self.snapshot_dir = snapshot_dir
        self.default_limit = default_limit

    def read(self, limit: object = None, now: datetime | None = None) -> str:
        entries = read_today_history(
            limit,
            default_limit=self.default_limit,
            history_path=self.history_path or None,
            snapshot_dir=self.snapshot_dir or None,
            now=now,
        )
        return format_history(entries)

    async def recent(self, limit: object = None, now: datetime | None = None) -> str:
        # File copy and SQLite I/O block; a worker thread keeps concurrent
        # requests moving.
        return await asyncio.to_thread(self.read, limit, now)
