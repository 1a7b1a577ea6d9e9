from __future__ import annotations


class HistoryError(RuntimeError):
    """Base class for every failure raised while reading browser history."""

    code = "history_error"


class UnsupportedPlatform(HistoryError):
    code = "unsupported_platform"


class IdentityResolutionFailed(HistoryError):
    code = "identity_resolution_failed"


class SourceNotFound(HistoryError):
    code = "source_not_found"

    def __init__(self, path: str) -> None:
        super().__init__(f"Chrome history file not found: {path}")
        self.path = path


class CopyFailed(HistoryError):
    code = "copy_failed"


class OpenFailed(HistoryError):
    code = "open_failed"


class QueryFailed(HistoryError):
    code = "query_failed"
