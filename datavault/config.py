"""
Configuration for the Data Vault console controller.

Intent:
    Read every environment variable the controller depends on in one place and
    validate it once. Callers receive an immutable `Settings` object and pass
    it down explicitly; nothing else in the package reads the environment.

Env:
    DATAVAULT_ENV                        dev | test | stage | prod (default: dev)
    DATAVAULT_API_URL                    backend base URL (default: http://localhost:3000/api)
    DATAVAULT_HTTP_TIMEOUT_SECONDS       request timeout, 1..120 (default: 15)
    DATAVAULT_BACKDROP_INTERVAL_SECONDS  login backdrop rotation, 1..300 (default: 3)
    DATAVAULT_SESSION_FILE               JSON file for the persisted session; unset
                                         means the session lives in memory only
"""
from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Mapping, Optional
from urllib.parse import urlparse


DEFAULT_API_URL = "http://localhost:3000/api"


@dataclass(frozen=True)
class Settings:
    environment: str
    api_url: str
    http_timeout_seconds: int
    backdrop_interval_seconds: int
    session_file: Optional[str] = None


def _is_prod_like(env: str) -> bool:
    return (env or "").lower() in {"prod", "production", "stage", "staging"}


def _int_env(environ: Mapping[str, str], name: str, default: int, *, upper: int) -> int:
    raw = (environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw!r}")
    if value <= 0 or value > upper:
        raise ValueError(f"{name} out of range (1..{upper}), got: {value}")
    return value


def _validate_api_url(url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        raise ValueError("DATAVAULT_API_URL must be an absolute http:// or https:// URL")
    return url.rstrip("/")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Parse and validate settings from the environment.

    Behavior:
        - Missing values fall back to development defaults.
        - Malformed integers, out-of-range timeouts and relative API URLs raise
          ValueError so misconfiguration fails at startup, not mid-session.
    """
    env = os.environ if environ is None else environ
    environment = (env.get("DATAVAULT_ENV") or "dev").strip().lower()
    api_url = _validate_api_url((env.get("DATAVAULT_API_URL") or DEFAULT_API_URL).strip())
    session_file = (env.get("DATAVAULT_SESSION_FILE") or "").strip() or None
    return Settings(
        environment=environment,
        api_url=api_url,
        http_timeout_seconds=_int_env(env, "DATAVAULT_HTTP_TIMEOUT_SECONDS", 15, upper=120),
        backdrop_interval_seconds=_int_env(env, "DATAVAULT_BACKDROP_INTERVAL_SECONDS", 3, upper=300),
        session_file=session_file,
    )


def ensure_secure_config_on_startup(settings: Settings) -> None:
    """Fail fast on insecure production configuration.

    Bearer tokens travel with every request, so prod-like environments must
    talk to the backend over TLS. Development remains permissive.
    """
    if not _is_prod_like(settings.environment):
        return
    if settings.api_url.lower().startswith("http://"):
        raise SystemExit(
            "Refusing to start: DATAVAULT_API_URL must use https in production (got http)."
        )


__all__ = ["DEFAULT_API_URL", "Settings", "load_settings", "ensure_secure_config_on_startup"]
