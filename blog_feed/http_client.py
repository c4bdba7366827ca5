from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Iterable, Mapping, NoReturn

import httpx

from .config_schema import DEFAULT_PUBLIC_ENDPOINTS, AppConfig, normalize_api_path
from .credentials import CredentialStore, extract_tokens, looks_like_token
from .errors import ApiError, SessionExpiredError
from .event_log import EventLogger

SessionEndedFn = Callable[[str], None]


@dataclass
class _PendingRequest:
    method: str
    path: str
    params: Mapping[str, Any] | None
    json: Any
    # one-shot marker: set before the single refresh-and-retry
    retried: bool = False
    sent_token: str | None = None


def _json_or_none(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def _error_message(payload: Any, response: httpx.Response) -> str:
    if isinstance(payload, Mapping):
        msg = payload.get("message") or payload.get("error")
        if isinstance(msg, str) and msg.strip():
            return msg.strip()
    return response.reason_phrase or "request failed"


class ApiClient:
    """
    HTTP client for the blog backend with bearer auth and a one-shot refresh.

    A 401 on a non-public path triggers exactly one refresh-token exchange and
    one re-send of the original request. A failed exchange clears the stored
    credentials, fires `on_session_ended(login_path)` and raises
    SessionExpiredError. Concurrent refreshes are coalesced under a lock.
    """

    def __init__(
        self,
        base_url: str,
        *,
        credentials: CredentialStore,
        public_endpoints: Iterable[str] = DEFAULT_PUBLIC_ENDPOINTS,
        refresh_path: str = "/auth/refresh-token",
        login_path: str = "/login",
        timeout_seconds: float = 15.0,
        client: httpx.Client | None = None,
        on_session_ended: SessionEndedFn | None = None,
        logger: EventLogger | None = None,
    ) -> None:
        self._credentials = credentials
        self._public = {normalize_api_path(p) for p in public_endpoints if (p or "").strip()}
        self._refresh_path = normalize_api_path(refresh_path)
        self._login_path = login_path
        self._on_session_ended = on_session_ended
        self._logger = logger
        self._refresh_lock = Lock()

        if client is not None:
            self._client = client
        else:
            self._client = httpx.Client(
                base_url=base_url,
                timeout=timeout_seconds,
                headers={"Content-Type": "application/json"},
            )

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        *,
        credentials: CredentialStore,
        base_url: str | None = None,
        client: httpx.Client | None = None,
        on_session_ended: SessionEndedFn | None = None,
        logger: EventLogger | None = None,
    ) -> "ApiClient":
        return cls(
            base_url or config.api.base_url,
            credentials=credentials,
            public_endpoints=config.api.public_endpoints,
            refresh_path=config.api.refresh_path,
            login_path=config.api.login_path,
            timeout_seconds=config.api.timeout_seconds,
            client=client,
            on_session_ended=on_session_ended,
            logger=logger,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    @property
    def credentials(self) -> CredentialStore:
        return self._credentials

    def is_public(self, path: str) -> bool:
        return normalize_api_path(path) in self._public

    def get(self, path: str, *, params: Mapping[str, Any] | None = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None) -> Any:
        return self.request("POST", path, json=json)

    def put(self, path: str, json: Any = None) -> Any:
        return self.request("PUT", path, json=json)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        allow_refresh: bool = True,
    ) -> Any:
        """
        Send a request and return the decoded JSON body (None when empty).

        `allow_refresh=False` turns a 401 into a plain ApiError without a
        token exchange.
        """
        pending = _PendingRequest(
            method=(method or "GET").strip().upper(),
            path=path,
            params=params,
            json=json,
        )

        response = self._send(pending)

        if (
            response.status_code == 401
            and allow_refresh
            and not pending.retried
            and not self.is_public(pending.path)
        ):
            pending.retried = True
            if self._refresh_access_token(pending):
                response = self._send(pending)

        return self._decode(pending, response)

    def _send(self, pending: _PendingRequest) -> httpx.Response:
        headers: dict[str, str] = {}
        token = self._credentials.get().access_token

        if token and looks_like_token(token):
            headers["Authorization"] = f"Bearer {token}"
            pending.sent_token = token
        else:
            if token:
                self._credentials.clear()
                self._log("warning", "malformed_access_token_cleared", path=pending.path)
            pending.sent_token = None

        try:
            return self._client.request(
                pending.method,
                pending.path,
                params=pending.params,
                json=pending.json,
                headers=headers,
            )
        except httpx.HTTPError as e:
            self._log(
                "warning",
                "api_request_failed",
                method=pending.method,
                path=pending.path,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise ApiError(
                f"{pending.method} {pending.path} failed: {e}",
                status_code=None,
                path=pending.path,
            ) from e

    def _decode(self, pending: _PendingRequest, response: httpx.Response) -> Any:
        if response.is_success:
            if response.status_code == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError as e:
                raise ApiError(
                    f"{pending.method} {pending.path} returned invalid JSON",
                    status_code=response.status_code,
                    path=pending.path,
                ) from e

        payload = _json_or_none(response)
        message = _error_message(payload, response)
        self._log(
            "warning",
            "api_request_failed",
            method=pending.method,
            path=pending.path,
            status=response.status_code,
            retried=pending.retried,
            message=message,
        )
        raise ApiError(
            f"{pending.method} {pending.path} failed with HTTP {response.status_code}: {message}",
            status_code=response.status_code,
            path=pending.path,
            payload=payload,
        )

    def _refresh_access_token(self, pending: _PendingRequest) -> bool:
        """Returns True when the original request should be re-sent."""
        with self._refresh_lock:
            current = self._credentials.get()

            if looks_like_token(current.access_token) and current.access_token != pending.sent_token:
                # another request already refreshed while this one was in flight
                self._log("info", "token_refresh_coalesced", path=pending.path)
                return True

            refresh_token = current.refresh_token
            if not looks_like_token(refresh_token):
                # nothing to exchange; the 401 is returned as is
                self._log("info", "token_refresh_skipped", path=pending.path)
                return False

            self._log("info", "token_refresh_started", path=pending.path)

            try:
                response = self._client.post(
                    self._refresh_path,
                    json={"refreshToken": refresh_token},
                )
            except httpx.HTTPError as e:
                self._end_session(pending.path, reason=f"transport_error:{type(e).__name__}", cause=e)

            if not response.is_success:
                self._end_session(pending.path, reason=f"http_{response.status_code}")

            access, rotated = extract_tokens(_json_or_none(response))
            if not looks_like_token(access):
                self._end_session(pending.path, reason="no_access_token_in_response")

            self._credentials.set_access_token(
                access,
                refresh_token=rotated if looks_like_token(rotated) else None,
            )
            self._log("info", "token_refresh_succeeded", path=pending.path)
            return True

    def _end_session(
        self, path: str, *, reason: str, cause: BaseException | None = None
    ) -> NoReturn:
        self._credentials.clear()
        self._log("error", "token_refresh_failed", path=path, reason=reason)
        self._log("warning", "session_ended", login_path=self._login_path)

        if self._on_session_ended is not None:
            self._on_session_ended(self._login_path)

        raise SessionExpiredError(
            "Session expired; please log in again",
            status_code=401,
            path=path,
        ) from cause

    def _log(self, level: str, event: str, **data: Any) -> None:
        if self._logger is None:
            return
        getattr(self._logger, level)(event, **data)
