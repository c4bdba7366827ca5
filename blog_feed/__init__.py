from __future__ import annotations

from .config import load_config, resolve_base_url, resolve_login_secrets
from .config_schema import AppConfig
from .controller import FeedController
from .credentials import Credentials, MemoryCredentialStore, SQLiteCredentialStore
from .errors import ApiError, ConfigError, SessionExpiredError, StorageError
from .filter_state import FilterState
from .http_client import ApiClient
from .pipeline import FilterResult, apply_filters

__all__ = [
    "ApiClient",
    "ApiError",
    "AppConfig",
    "ConfigError",
    "Credentials",
    "FeedController",
    "FilterResult",
    "FilterState",
    "MemoryCredentialStore",
    "SQLiteCredentialStore",
    "SessionExpiredError",
    "StorageError",
    "apply_filters",
    "load_config",
    "resolve_base_url",
    "resolve_login_secrets",
]
