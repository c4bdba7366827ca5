from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Mapping, Protocol

from .errors import StorageError
from .storage_schema import initialize_sqlite

ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"
USER_KEY = "user"

_ALL_KEYS = (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY)


def looks_like_token(value: str | None) -> bool:
    """Structural check only: three non-empty dot-separated segments."""
    if not isinstance(value, str):
        return False
    parts = value.strip().split(".")
    return len(parts) == 3 and all(parts)


@dataclass(frozen=True)
class Credentials:
    access_token: str | None = None
    refresh_token: str | None = None
    user: Mapping[str, Any] | None = field(default=None, compare=False)

    @property
    def is_empty(self) -> bool:
        return not self.access_token and not self.refresh_token and not self.user


class CredentialStore(Protocol):
    def get(self) -> Credentials: ...

    def set(self, credentials: Credentials) -> None: ...

    def set_access_token(self, token: str, *, refresh_token: str | None = None) -> None: ...

    def clear(self) -> None: ...


class MemoryCredentialStore:
    """Process-local credential store."""

    def __init__(self, credentials: Credentials | None = None) -> None:
        self._lock = Lock()
        self._credentials = credentials or Credentials()

    def get(self) -> Credentials:
        with self._lock:
            return self._credentials

    def set(self, credentials: Credentials) -> None:
        with self._lock:
            self._credentials = credentials

    def set_access_token(self, token: str, *, refresh_token: str | None = None) -> None:
        with self._lock:
            current = self._credentials
            self._credentials = Credentials(
                access_token=token,
                refresh_token=refresh_token or current.refresh_token,
                user=current.user,
            )

    def clear(self) -> None:
        with self._lock:
            self._credentials = Credentials()


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteCredentialStore:
    """
    Credential store persisted in a small SQLite key/value table.

    The access token, refresh token and cached user profile live under fixed
    keys and are always written and cleared in one transaction.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = Lock()

    @classmethod
    def open(cls, path: str | Path) -> "SQLiteCredentialStore":
        db_path = str(path)
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            conn = sqlite3.connect(db_path, check_same_thread=False)
        except sqlite3.DatabaseError as e:
            raise StorageError(f"Failed to open credential database: {db_path}: {e}") from e

        try:
            initialize_sqlite(conn)
        except Exception as e:
            conn.close()
            raise StorageError(f"Failed to initialize credential schema: {e}") from e

        return cls(conn)

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "SQLiteCredentialStore":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    def get(self) -> Credentials:
        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT key, value FROM client_storage WHERE key IN (?, ?, ?)",
                    _ALL_KEYS,
                ).fetchall()
        except sqlite3.DatabaseError as e:
            raise StorageError(f"Failed to read credentials: {e}") from e

        values = {str(k): str(v) for k, v in rows}

        user: Mapping[str, Any] | None = None
        raw_user = values.get(USER_KEY)
        if raw_user:
            try:
                parsed = json.loads(raw_user)
            except ValueError:
                parsed = None
            if isinstance(parsed, dict):
                user = parsed

        return Credentials(
            access_token=values.get(ACCESS_TOKEN_KEY) or None,
            refresh_token=values.get(REFRESH_TOKEN_KEY) or None,
            user=user,
        )

    def set(self, credentials: Credentials) -> None:
        now = _utc_now_iso()
        rows: list[tuple[str, str, str]] = []
        if credentials.access_token:
            rows.append((ACCESS_TOKEN_KEY, credentials.access_token, now))
        if credentials.refresh_token:
            rows.append((REFRESH_TOKEN_KEY, credentials.refresh_token, now))
        if credentials.user is not None:
            rows.append(
                (USER_KEY, json.dumps(dict(credentials.user), ensure_ascii=False, default=str), now)
            )

        try:
            with self._lock, self._conn:
                self._conn.execute(
                    "DELETE FROM client_storage WHERE key IN (?, ?, ?)", _ALL_KEYS
                )
                self._conn.executemany(
                    "INSERT INTO client_storage(key, value, updated_at) VALUES (?, ?, ?)",
                    rows,
                )
        except sqlite3.DatabaseError as e:
            raise StorageError(f"Failed to write credentials: {e}") from e

    def set_access_token(self, token: str, *, refresh_token: str | None = None) -> None:
        now = _utc_now_iso()
        rows = [(ACCESS_TOKEN_KEY, token, now)]
        if refresh_token:
            rows.append((REFRESH_TOKEN_KEY, refresh_token, now))

        try:
            with self._lock, self._conn:
                self._conn.executemany(
                    """
                    INSERT INTO client_storage(key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                      value = excluded.value,
                      updated_at = excluded.updated_at
                    """.strip(),
                    rows,
                )
        except sqlite3.DatabaseError as e:
            raise StorageError(f"Failed to write access token: {e}") from e

    def clear(self) -> None:
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    "DELETE FROM client_storage WHERE key IN (?, ?, ?)", _ALL_KEYS
                )
        except sqlite3.DatabaseError as e:
            raise StorageError(f"Failed to clear credentials: {e}") from e


def extract_tokens(payload: Any) -> tuple[str | None, str | None]:
    """
    Pull (access, refresh) tokens out of an auth response.

    Accepts a flat `{accessToken | token, refreshToken}` object as well as the
    backend's `{success, data: {token, refreshToken}}` envelope.
    """
    if not isinstance(payload, Mapping):
        return None, None

    candidates: list[Mapping[str, Any]] = [payload]
    data = payload.get("data")
    if isinstance(data, Mapping):
        candidates.append(data)

    access: str | None = None
    refresh: str | None = None
    for obj in candidates:
        for key in ("accessToken", "token"):
            val = obj.get(key)
            if access is None and isinstance(val, str) and val.strip():
                access = val.strip()
        val = obj.get("refreshToken")
        if refresh is None and isinstance(val, str) and val.strip():
            refresh = val.strip()

    return access, refresh
