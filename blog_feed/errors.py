from __future__ import annotations

from typing import Any, Literal

ErrorKind = Literal["validation", "transient", "auth_expired", "not_found", "forbidden", "unknown"]


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


class StorageError(RuntimeError):
    """Raised when reading or writing stored credentials fails."""


class ApiError(RuntimeError):
    """Raised when a backend request fails or returns an error status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        path: str | None = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.path = path
        self.payload = payload


class SessionExpiredError(ApiError):
    """Raised when the refresh token could not be exchanged; credentials are gone."""


def _extract_status_code(exc: BaseException) -> int | None:
    val = getattr(exc, "status_code", None)
    if val is None:
        return None
    try:
        return int(val)
    except Exception:
        return None


def classify_error(exc: BaseException) -> ErrorKind:
    """
    Map an exception onto the client's error taxonomy.

    - validation: HTTP 400 / 422
    - transient: transport failures, HTTP 408 / 429 / 5xx
    - auth_expired: HTTP 401 or a terminal refresh failure
    - not_found / forbidden: HTTP 404 / 403 on a specific resource
    """
    if isinstance(exc, SessionExpiredError):
        return "auth_expired"

    if isinstance(exc, ApiError):
        code = _extract_status_code(exc)
        if code is None:
            return "transient"
        if code in (400, 422):
            return "validation"
        if code == 401:
            return "auth_expired"
        if code == 403:
            return "forbidden"
        if code == 404:
            return "not_found"
        if code in (408, 429) or code >= 500:
            return "transient"
        return "unknown"

    if isinstance(exc, (ConnectionError, TimeoutError)):
        return "transient"

    return "unknown"
