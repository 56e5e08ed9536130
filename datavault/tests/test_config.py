"""
Configuration parsing and the production TLS guard.
"""
from __future__ import annotations

import pytest

from datavault.config import DEFAULT_API_URL, Settings, ensure_secure_config_on_startup, load_settings


def test_defaults_without_environment():
    settings = load_settings({})
    assert settings.environment == "dev"
    assert settings.api_url == DEFAULT_API_URL
    assert settings.http_timeout_seconds == 15
    assert settings.backdrop_interval_seconds == 3
    assert settings.session_file is None


def test_values_from_environment():
    settings = load_settings(
        {
            "DATAVAULT_ENV": "Stage",
            "DATAVAULT_API_URL": "https://vault.example.org/api/",
            "DATAVAULT_HTTP_TIMEOUT_SECONDS": "30",
            "DATAVAULT_BACKDROP_INTERVAL_SECONDS": "5",
            "DATAVAULT_SESSION_FILE": "/tmp/session.json",
        }
    )
    assert settings == Settings(
        environment="stage",
        api_url="https://vault.example.org/api",
        http_timeout_seconds=30,
        backdrop_interval_seconds=5,
        session_file="/tmp/session.json",
    )


@pytest.mark.parametrize("value", ["0", "121", "abc", "-3"])
def test_timeout_out_of_range_raises(value):
    with pytest.raises(ValueError):
        load_settings({"DATAVAULT_HTTP_TIMEOUT_SECONDS": value})


@pytest.mark.parametrize("url", ["localhost:3000/api", "ftp://x/api", "/api"])
def test_relative_or_foreign_api_url_raises(url):
    with pytest.raises(ValueError):
        load_settings({"DATAVAULT_API_URL": url})


def test_prod_refuses_plain_http():
    settings = load_settings({"DATAVAULT_ENV": "prod", "DATAVAULT_API_URL": "http://vault.example.org/api"})
    with pytest.raises(SystemExit):
        ensure_secure_config_on_startup(settings)


def test_prod_accepts_https_and_dev_accepts_http():
    ensure_secure_config_on_startup(load_settings({"DATAVAULT_ENV": "prod", "DATAVAULT_API_URL": "https://v.example.org"}))
    ensure_secure_config_on_startup(load_settings({"DATAVAULT_ENV": "dev"}))
