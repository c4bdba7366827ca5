from __future__ import annotations

import re
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

_ENV_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

DEFAULT_PUBLIC_ENDPOINTS: tuple[str, ...] = (
    "/posts/search",
    "/posts/search/suggestions",
    "/posts",
    "/posts/featured",
    "/posts/popular",
    "/auth/login",
    "/auth/register",
    "/auth/forgot-password",
    "/auth/reset-password",
)


def normalize_api_path(value: str) -> str:
    """Strip query string, fragment and trailing slash; ensure a leading slash."""
    path = (value or "").strip()
    for sep in ("?", "#"):
        if sep in path:
            path = path.split(sep, 1)[0]
    path = path.rstrip("/")
    if not path.startswith("/"):
        path = "/" + path
    return path


def _normalize_path_list(values: list[str]) -> list[str]:
    out: list[str] = []
    seen: set[str] = set()

    for item in values:
        if not (item or "").strip():
            continue
        path = normalize_api_path(item)
        if path in seen:
            continue
        seen.add(path)
        out.append(path)

    return out


def _validate_env_var_name(value: str) -> str:
    name = (value or "").strip()
    if not _ENV_NAME_RE.fullmatch(name):
        raise ValueError("must be a valid environment variable name")
    return name


PositiveInt = Annotated[int, Field(ge=1)]
NonNegativeInt = Annotated[int, Field(ge=0)]


class ApiConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: str = "http://localhost:4000/api"
    base_url_env: str = "BLOG_API_BASE_URL"
    timeout_seconds: float = Field(15.0, gt=0.0)
    refresh_path: str = "/auth/refresh-token"
    login_path: str = "/login"
    public_endpoints: list[str] = Field(default_factory=lambda: list(DEFAULT_PUBLIC_ENDPOINTS))

    @field_validator("base_url")
    @classmethod
    def _base_url_must_be_http(cls, v: str) -> str:
        url = (v or "").strip().rstrip("/")
        if not url.startswith(("http://", "https://")):
            raise ValueError("must start with http:// or https://")
        return url

    @field_validator("base_url_env")
    @classmethod
    def _base_url_env_must_be_valid(cls, v: str) -> str:
        return _validate_env_var_name(v)

    @field_validator("refresh_path")
    @classmethod
    def _normalize_refresh_path(cls, v: str) -> str:
        return normalize_api_path(v)

    @field_validator("public_endpoints")
    @classmethod
    def _normalize_public_endpoints(cls, v: list[str]) -> list[str]:
        return _normalize_path_list(v)


class FeedConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    fetch_limit: PositiveInt = 50
    page_size: PositiveInt = 9
    debounce_ms: NonNegativeInt = 300
    suggestion_min_chars: PositiveInt = 2


class StorageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    credentials_path: str = ".blog_feed/credentials.sqlite"


class AuthConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    email_env: str = "BLOG_FEED_EMAIL"
    password_env: str = "BLOG_FEED_PASSWORD"

    @field_validator("email_env", "password_env")
    @classmethod
    def _env_must_be_valid(cls, v: str) -> str:
        return _validate_env_var_name(v)


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    api: ApiConfig = Field(default_factory=ApiConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
