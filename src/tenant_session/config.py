from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable

from dotenv import load_dotenv


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ClientConfig:
    env_name: str
    api_base_url: str
    directory_path: str = "/TenantSelector"
    timeout_seconds: float = 10.0
    operation_timeout_seconds: float = 30.0
    retries: int = 2
    retry_backoff_seconds: float = 0.3
    verify_ssl: bool = True
    credential_attempts: int = 2
    storage_dir: str | None = None


def _require(values: dict[str, str | None], required: Iterable[str]) -> None:
    missing = [key for key in required if not values.get(key)]
    if missing:
        raise ConfigError(f"Missing required config values: {', '.join(missing)}")


def _coerce_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _read_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected a number, got {raw!r}") from exc


def _read_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected an integer, got {raw!r}") from exc


def _validate(condition: bool, message: str) -> None:
    if not condition:
        raise ConfigError(message)


def _normalize_path(value: str) -> str:
    stripped = value.strip().strip("/")
    return f"/{stripped}" if stripped else ""


def load_config(env_file: str | None = None) -> ClientConfig:
    """Load config from environment with optional .env override."""
    load_dotenv(env_file)

    env_name = (os.getenv("TENANT_SESSION_ENV") or "dev").strip()
    env_key = env_name.upper()

    api_base_url = (
        (os.getenv(f"TENANT_SESSION_API_BASE_URL_{env_key}") or "").strip()
        or (os.getenv("TENANT_SESSION_API_BASE_URL") or "").strip()
    )
    _require({"TENANT_SESSION_API_BASE_URL": api_base_url}, ["TENANT_SESSION_API_BASE_URL"])

    timeout_seconds = _read_float("TENANT_SESSION_TIMEOUT_SECONDS", "10")
    _validate(
        timeout_seconds > 0,
        f"Invalid TENANT_SESSION_TIMEOUT_SECONDS: expected > 0, got {timeout_seconds}",
    )

    operation_timeout_seconds = _read_float("TENANT_SESSION_OPERATION_TIMEOUT_SECONDS", "30")
    _validate(
        operation_timeout_seconds > 0,
        (
            "Invalid TENANT_SESSION_OPERATION_TIMEOUT_SECONDS: "
            f"expected > 0, got {operation_timeout_seconds}"
        ),
    )

    retries = _read_int("TENANT_SESSION_RETRIES", "2")
    _validate(retries >= 0, f"Invalid TENANT_SESSION_RETRIES: expected >= 0, got {retries}")

    retry_backoff_seconds = _read_float("TENANT_SESSION_RETRY_BACKOFF_SECONDS", "0.3")
    _validate(
        retry_backoff_seconds >= 0,
        (
            "Invalid TENANT_SESSION_RETRY_BACKOFF_SECONDS: "
            f"expected >= 0, got {retry_backoff_seconds}"
        ),
    )

    credential_attempts = _read_int("TENANT_SESSION_CREDENTIAL_ATTEMPTS", "2")
    _validate(
        credential_attempts >= 1,
        f"Invalid TENANT_SESSION_CREDENTIAL_ATTEMPTS: expected >= 1, got {credential_attempts}",
    )

    storage_dir = (os.getenv("TENANT_SESSION_STORAGE_DIR") or "").strip() or None

    return ClientConfig(
        env_name=env_name,
        api_base_url=api_base_url.rstrip("/"),
        directory_path=_normalize_path(os.getenv("TENANT_SESSION_DIRECTORY_PATH", "/TenantSelector")),
        timeout_seconds=timeout_seconds,
        operation_timeout_seconds=operation_timeout_seconds,
        retries=retries,
        retry_backoff_seconds=retry_backoff_seconds,
        verify_ssl=_coerce_bool(os.getenv("TENANT_SESSION_VERIFY_SSL"), True),
        credential_attempts=credential_attempts,
        storage_dir=storage_dir,
    )
