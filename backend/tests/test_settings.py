"""Tests for environment-driven settings."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[2]
BACKEND_PATH = PROJECT_ROOT / "backend"
if str(BACKEND_PATH) not in sys.path:
    sys.path.insert(0, str(BACKEND_PATH))


from errors import ConfigurationError  # noqa: E402  pylint: disable=wrong-import-position
from settings import load_settings  # noqa: E402  pylint: disable=wrong-import-position


BASE_ENV = {
    "GOTENBERG_URL": "https://gotenberg.test/",
    "GOTENBERG_API_KEY": "g-key",
    "SUPABASE_URL": "https://proj.supabase.co/",
    "SUPABASE_SERVICE_ROLE_KEY": "service-key",
}


def test_missing_keys_are_reported_together() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        load_settings({"GOTENBERG_URL": "https://gotenberg.test"})

    message = str(excinfo.value)
    assert "GOTENBERG_API_KEY" in message
    assert "SUPABASE_URL" in message
    assert "SUPABASE_SERVICE_ROLE_KEY" in message
    assert "GOTENBERG_URL," not in message


def test_defaults_and_derived_urls() -> None:
    settings = load_settings(BASE_ENV)

    assert settings.gotenberg_url == "https://gotenberg.test"
    assert settings.storage_bucket == "holiday-cards"
    assert settings.rest_url == "https://proj.supabase.co/rest/v1"
    assert settings.s3_endpoint == "https://proj.supabase.co/storage/v1/s3"
    assert settings.public_object_url == "https://proj.supabase.co/storage/v1/object/public/holiday-cards"
    assert settings.signed_url_ttl == 3600
    assert settings.render_wait_delay == "2000ms"
    assert settings.render_timeout is None


def test_overrides_are_applied() -> None:
    env = {
        **BASE_ENV,
        "STORAGE_BUCKET": "cards-staging",
        "STORAGE_S3_ENDPOINT": "https://s3.local/",
        "SIGNED_URL_TTL_SECONDS": "600",
        "RENDER_TIMEOUT_SECONDS": "45",
        "LOG_LEVEL": "debug",
    }

    settings = load_settings(env)

    assert settings.storage_bucket == "cards-staging"
    assert settings.s3_endpoint == "https://s3.local"
    assert settings.signed_url_ttl == 600
    assert settings.render_timeout == 45.0
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    "raw, expected",
    [("1500", "1500ms"), ("3s", "3s"), ("250ms", "250ms"), ("soon", "2000ms"), ("", "2000ms")],
)
def test_wait_delay_is_normalized(raw: str, expected: str) -> None:
    assert load_settings({**BASE_ENV, "RENDER_WAIT_DELAY": raw}).render_wait_delay == expected


def test_non_numeric_timeout_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        load_settings({**BASE_ENV, "IMAGE_FETCH_TIMEOUT_SECONDS": "ten"})
