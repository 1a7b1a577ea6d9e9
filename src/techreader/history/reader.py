from __future__ import annotations

import logging
import os
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from .platform import resolve_history_path, resolve_host_username
from .query import DEFAULT_LIMIT, HistoryEntry, normalize_limit, query_recent_history, start_of_today_webkit
from .snapshot import take_snapshot

log = logging.getLogger(__name__)


def read_today_history(
    limit: object = None,
    *,
    default_limit: int = DEFAULT_LIMIT,
    history_path: str | os.PathLike[str] | None = None,
    snapshot_dir: str | os.PathLike[str] | None = None,
    now: datetime | None = None,
    username_resolver: Callable[[], str] = resolve_host_username,
) -> list[HistoryEntry]:
    """Today's Chrome visits, newest first.

    The path is resolved on every call rather than cached, the live database
    is never opened directly, and the temporary copy is gone by the time
    this returns or raises.
    """
    source = Path(history_path) if history_path else resolve_history_path(username_resolver=username_resolver)
    since = start_of_today_webkit(now)
    bound = normalize_limit(limit, default_limit)
    with take_snapshot(source, snapshot_dir) as handle:
        entries = query_recent_history(handle.path, since, bound)
    log.info("Read %d history entries from %s", len(entries), source)
    return entries
