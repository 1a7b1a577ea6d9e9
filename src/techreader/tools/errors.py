from __future__ import annotations

import httpx


class ToolRequestError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


RETRYABLE_HTTP_STATUSES = {429, 500, 502, 503, 504}


def is_retryable_status(status_code: int | None) -> bool:
    return status_code in RETRYABLE_HTTP_STATUSES


def from_http_error(cls: type[ToolRequestError], message: str, exc: Exception) -> ToolRequestError:
    """Wrap an httpx failure, keeping its status and whether a retry could help."""
    status = None
    retryable = False
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        retryable = is_retryable_status(status)
    elif isinstance(exc, (httpx.TimeoutException, httpx.TransportError)):
        retryable = True
    return cls(f"{message}: {exc}", status_code=status, retryable=retryable)
