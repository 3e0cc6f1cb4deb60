"""Environment-driven configuration objects for the storefront."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable

from dotenv import load_dotenv

from storefront.core.exceptions import ConfigurationException

DEFAULT_API_BASE_URL = "https://seashell-app-4gkvz.ondigitalocean.app/api"
DEFAULT_STORAGE_QUOTA_BYTES = 5 * 1024 * 1024


def _str_to_bool(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"true", "1", "yes", "y"}


def _number_from_env(name: str, default: str, cast: Callable[[str], Any]) -> Any:
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigurationException(f"{name} must be a number, got {raw!r}") from exc


def _split_origins(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(origin.strip() for origin in value.split(",") if origin.strip())


@dataclass(frozen=True, slots=True)
class Settings:
    api_base_url: str
    public_base_url: str | None
    redis_url: str | None
    backend_timeout: float
    storage_quota_bytes: int
    visitor_cookie_name: str
    verify_payments: bool
    allowed_origins: tuple[str, ...]
    environment: str
    log_level: str
    log_format: str
    port: int

    @property
    def is_dev(self) -> bool:
        return self.environment in ("development", "dev", "local", "test")


def load_settings() -> Settings:
    """Load environment variables once and expose typed settings."""
    load_dotenv()

    api_base_url = (os.getenv("API_BASE_URL") or DEFAULT_API_BASE_URL).rstrip("/")
    public_base_url = (os.getenv("PUBLIC_BASE_URL") or "").strip().rstrip("/") or None

    return Settings(
        api_base_url=api_base_url,
        public_base_url=public_base_url,
        redis_url=os.getenv("REDIS_URL") or None,
        backend_timeout=_number_from_env("BACKEND_TIMEOUT", "30", float),
        storage_quota_bytes=_number_from_env(
            "STORAGE_QUOTA_BYTES", str(DEFAULT_STORAGE_QUOTA_BYTES), int
        ),
        visitor_cookie_name=os.getenv("VISITOR_COOKIE_NAME", "visitor_id"),
        verify_payments=_str_to_bool(os.getenv("VERIFY_PAYMENTS")),
        allowed_origins=_split_origins(os.getenv("ALLOWED_ORIGINS")),
        environment=os.getenv("ENVIRONMENT", "production").strip().lower(),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_format=os.getenv(
            "LOG_FORMAT", "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
        ),
        port=_number_from_env("PORT", "8080", int),
    )
