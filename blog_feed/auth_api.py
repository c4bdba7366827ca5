from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .credentials import Credentials, extract_tokens, looks_like_token
from .errors import ApiError
from .http_client import ApiClient


@dataclass(frozen=True)
class LoginResult:
    user: Mapping[str, Any]
    credentials: Credentials


def _extract_user(payload: Any) -> dict[str, Any] | None:
    if not isinstance(payload, Mapping):
        return None

    for obj in (payload.get("data"), payload):
        if isinstance(obj, Mapping) and isinstance(obj.get("user"), Mapping):
            user = dict(obj["user"])
            break
    else:
        return None

    if user.get("_id") and not user.get("id"):
        user["id"] = user["_id"]
    if user.get("id") and not user.get("_id"):
        user["_id"] = user["id"]

    avatar = user.get("avatar")
    if isinstance(avatar, Mapping):
        user["avatar"] = avatar.get("url") or ""

    return user


class AuthApi:
    """Authentication endpoints; login and logout own the stored credential pair."""

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    def login(self, email: str, password: str) -> LoginResult:
        store = self._client.credentials
        try:
            payload = self._client.post(
                "/auth/login",
                {"email": (email or "").strip(), "password": password},
            )
            user = _extract_user(payload)
            access, refresh = extract_tokens(payload)
            if user is None or not looks_like_token(access):
                raise ApiError("Invalid login response from server", path="/auth/login")
        except Exception:
            store.clear()
            raise

        credentials = Credentials(access_token=access, refresh_token=refresh, user=user)
        store.set(credentials)
        return LoginResult(user=user, credentials=credentials)

    def register(self, payload: Mapping[str, Any]) -> Any:
        return self._client.post("/auth/register", dict(payload))

    def logout(self) -> None:
        """Best-effort server logout; local credentials are cleared regardless."""
        store = self._client.credentials
        try:
            if store.get().access_token:
                # no token exchange just to log out
                self._client.request("POST", "/auth/logout", allow_refresh=False)
        except ApiError:
            pass
        finally:
            store.clear()

    def me(self) -> dict[str, Any]:
        payload = self._client.get("/auth/me")
        user = _extract_user(payload)
        if user is None and isinstance(payload, Mapping) and isinstance(payload.get("data"), Mapping):
            user = dict(payload["data"])
        if user is None:
            raise ApiError("Invalid profile response from server", path="/auth/me")

        store = self._client.credentials
        current = store.get()
        if current.access_token:
            store.set(
                Credentials(
                    access_token=current.access_token,
                    refresh_token=current.refresh_token,
                    user=user,
                )
            )
        return user

    def forgot_password(self, email: str) -> Any:
        return self._client.post("/auth/forgot-password", {"email": email})

    def reset_password(self, token: str, new_password: str) -> Any:
        return self._client.post(
            "/auth/reset-password", {"token": token, "newPassword": new_password}
        )

    def verify_email(self, token: str) -> Any:
        return self._client.post("/auth/verify-email", {"token": token})

    def resend_verification(self, email: str) -> Any:
        return self._client.post("/auth/resend-verification", {"email": email})
