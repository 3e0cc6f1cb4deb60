from __future__ import annotations

import pytest

from storefront.core import config
from storefront.core.exceptions import ConfigurationException


def _clear(monkeypatch) -> None:
    monkeypatch.setattr(config, "load_dotenv", lambda *args, **kwargs: False)
    for name in (
        "API_BASE_URL",
        "PUBLIC_BASE_URL",
        "REDIS_URL",
        "BACKEND_TIMEOUT",
        "STORAGE_QUOTA_BYTES",
        "VISITOR_COOKIE_NAME",
        "VERIFY_PAYMENTS",
        "ALLOWED_ORIGINS",
        "ENVIRONMENT",
        "PORT",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch) -> None:
    _clear(monkeypatch)

    settings = config.load_settings()

    assert settings.api_base_url == "https://seashell-app-4gkvz.ondigitalocean.app/api"
    assert settings.public_base_url is None
    assert settings.redis_url is None
    assert settings.backend_timeout == 30.0
    assert settings.storage_quota_bytes == 5 * 1024 * 1024
    assert settings.visitor_cookie_name == "visitor_id"
    assert settings.verify_payments is False
    assert settings.allowed_origins == ()
    assert settings.is_dev is False


def test_environment_overrides(monkeypatch) -> None:
    _clear(monkeypatch)
    monkeypatch.setenv("API_BASE_URL", "http://backend:8000/api/")
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://shop.example.com/")
    monkeypatch.setenv("VERIFY_PAYMENTS", "yes")
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example.com, ,https://b.example.com")
    monkeypatch.setenv("ENVIRONMENT", "Development")

    settings = config.load_settings()

    assert settings.api_base_url == "http://backend:8000/api"
    assert settings.public_base_url == "https://shop.example.com"
    assert settings.verify_payments is True
    assert settings.allowed_origins == ("https://a.example.com", "https://b.example.com")
    assert settings.is_dev is True


def test_malformed_number_is_a_configuration_error(monkeypatch) -> None:
    _clear(monkeypatch)
    monkeypatch.setenv("BACKEND_TIMEOUT", "thirty")

    with pytest.raises(ConfigurationException) as exc:
        config.load_settings()

    assert "BACKEND_TIMEOUT" in exc.value.message
