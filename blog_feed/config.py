from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import yaml
from pydantic import ValidationError

from .config_schema import AppConfig
from .errors import ConfigError


@dataclass(frozen=True)
class LoginSecrets:
    email: str
    password: str


def load_config(path: str | Path | None) -> AppConfig:
    """
    Load a YAML config file and validate it into a typed AppConfig.

    A missing path (None) yields the defaults. Raises ConfigError with a
    readable validation message on failure.
    """
    if path is None:
        return AppConfig()

    p = Path(path)

    if not p.exists():
        raise ConfigError(f"Config file not found: {p}")

    try:
        raw_text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {p}") from e

    try:
        data = yaml.safe_load(raw_text)
    except Exception as e:  # PyYAML can raise multiple exception types
        raise ConfigError(f"Failed to parse YAML in {p}: {e}") from e

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise ConfigError(f"Top-level YAML in {p} must be a mapping/object")

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(_format_pydantic_errors(e, p)) from e


def resolve_base_url(config: AppConfig, *, environ: Mapping[str, str] | None = None) -> str:
    """Return the API base URL, preferring the configured environment override."""
    env = os.environ if environ is None else environ

    override = (env.get(config.api.base_url_env) or "").strip().rstrip("/")
    if not override:
        return config.api.base_url

    if not override.startswith(("http://", "https://")):
        raise ConfigError(
            f"{config.api.base_url_env} must start with http:// or https://, got: {override}"
        )
    return override


def resolve_login_secrets(
    config: AppConfig, *, environ: Mapping[str, str] | None = None
) -> LoginSecrets:
    """
    Validate that the login environment variables are present and non-empty.
    """
    env = os.environ if environ is None else environ

    email_env = config.auth.email_env
    password_env = config.auth.password_env

    missing: list[str] = []
    if not (env.get(email_env) or "").strip():
        missing.append(email_env)
    if not (env.get(password_env) or ""):
        missing.append(password_env)

    if missing:
        joined = ", ".join(missing)
        raise ConfigError(f"Missing required environment variables: {joined}")

    return LoginSecrets(
        email=env[email_env].strip(),
        password=env[password_env],
    )


def _format_pydantic_errors(err: ValidationError, path: Path) -> str:
    lines: list[str] = [f"Invalid configuration in {path}:"]
    for item in err.errors():
        loc = ".".join(str(part) for part in item.get("loc", [])) or "<root>"
        msg = item.get("msg", "invalid value")
        lines.append(f"- {loc}: {msg}")
    return "\n".join(lines)
