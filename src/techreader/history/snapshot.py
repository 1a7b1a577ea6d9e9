"""
Point-in-time copies of the History database.

Chrome holds the live file locked while it runs, so every query works on a
private copy in the temp directory. The copy is removed when the ``with``
block exits; a failed unlink is only logged so it can never hide the
query's own outcome.
"""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .errors import CopyFailed, SourceNotFound

log = logging.getLogger(__name__)

SNAPSHOT_PREFIX = "chrome_history_copy_"
SNAPSHOT_SUFFIX = ".sqlite"


@dataclass(frozen=True)
class SnapshotHandle:
    path: Path
    created: datetime


def _snapshot_dir(directory: str | os.PathLike[str] | None) -> Path:
    return Path(directory) if directory else Path(tempfile.gettempdir())


def _remove(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        log.warning("Could not delete temporary history copy %s: %s", path, exc)
    else:
        log.debug("Deleted temporary history copy: %s", path)


def _copy(source: Path, directory: Path) -> Path:
    # mkstemp adds a random discriminator and creates the file with O_EXCL,
    # so two requests started in the same millisecond still get distinct files.
    prefix = f"{SNAPSHOT_PREFIX}{int(time.time() * 1000)}_"
    try:
        fd, name = tempfile.mkstemp(prefix=prefix, suffix=SNAPSHOT_SUFFIX, dir=directory)
    except OSError as exc:
        raise CopyFailed(f"Could not create a temporary file in {directory}: {exc}") from exc
    target = Path(name)
    try:
        with os.fdopen(fd, "wb") as dst, source.open("rb") as src:
            shutil.copyfileobj(src, dst)
    except OSError as exc:
        _remove(target)
        raise CopyFailed(f"Could not copy {source} to {target}: {exc}") from exc
    return target


@contextmanager
def take_snapshot(
    source: str | os.PathLike[str],
    directory: str | os.PathLike[str] | None = None,
) -> Iterator[SnapshotHandle]:
    src = Path(source)
    if not src.is_file():
        raise SourceNotFound(str(src))
    path = _copy(src, _snapshot_dir(directory))
    log.debug("Copied history DB to temporary path: %s", path)
    try:
        yield SnapshotHandle(path=path, created=datetime.now())
    finally:
        _remove(path)


def sweep_stale_snapshots(
    directory: str | os.PathLike[str] | None = None,
    max_age_seconds: float = 3600,
    *,
    now: float | None = None,
) -> list[Path]:
    """Delete copies left behind by requests that were abandoned mid-flight.

    Only files older than ``max_age_seconds`` are touched so copies owned by
    requests still in progress survive. Returns the paths that were removed.
    """
    if max_age_seconds <= 0:
        return []
    base = _snapshot_dir(directory)
    cutoff = (time.time() if now is None else now) - max_age_seconds
    removed: list[Path] = []
    try:
        candidates = list(base.glob(f"{SNAPSHOT_PREFIX}*{SNAPSHOT_SUFFIX}"))
    except OSError as exc:
        log.warning("Could not scan %s for stale history copies: %s", base, exc)
        return removed
    for path in candidates:
        try:
            if path.stat().st_mtime >= cutoff:
                continue
            path.unlink()
        except FileNotFoundError:
            continue
        except OSError as exc:
            log.warning("Could not delete stale history copy %s: %s", path, exc)
            continue
        removed.append(path)
    if removed:
        log.info("Removed %d stale history copies from %s", len(removed), base)
    return removed
