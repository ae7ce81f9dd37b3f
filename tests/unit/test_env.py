"""Tests for environment configuration getters."""

from datetime import timedelta

import pytest

from sajang_api.config import env


def test_database_url_required_in_production(monkeypatch):
    monkeypatch.setenv("SAJANG_ENV", "production")
    monkeypatch.delenv("DATABASE_URL", raising=False)

    with pytest.raises(ValueError, match="DATABASE_URL is required"):
        env.get_database_url()


def test_database_url_local_fallback(monkeypatch):
    monkeypatch.setenv("SAJANG_ENV", "local")
    monkeypatch.delenv("DATABASE_URL", raising=False)

    assert env.get_database_url() == env.DEFAULT_DEV_DATABASE_URL


def test_cooldown_default_and_override(monkeypatch):
    monkeypatch.delenv("PLACE_CHANGE_COOLDOWN_DAYS", raising=False)
    assert env.get_place_change_cooldown() == timedelta(days=30)

    monkeypatch.setenv("PLACE_CHANGE_COOLDOWN_DAYS", "7")
    assert env.get_place_change_cooldown() == timedelta(days=7)


@pytest.mark.parametrize("raw", ["abc", "-1"])
def test_invalid_integers_fail_fast(monkeypatch, raw):
    monkeypatch.setenv("DAILY_REFRESH_ALLOWANCE", raw)

    with pytest.raises(ValueError, match="DAILY_REFRESH_ALLOWANCE"):
        env.get_daily_refresh_allowance()


def test_nicepay_credentials_required(monkeypatch):
    monkeypatch.setenv("NICEPAY_CLIENT_ID", "id")
    monkeypatch.delenv("NICEPAY_SECRET_KEY", raising=False)

    with pytest.raises(ValueError):
        env.get_nicepay_credentials()


def test_cors_origins_are_split(monkeypatch):
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "https://sajangnote.com, https://www.sajangnote.com,")

    assert env.get_cors_allowed_origins() == ["https://sajangnote.com", "https://www.sajangnote.com"]


def test_firecrawl_key_is_optional(monkeypatch):
    monkeypatch.delenv("FIRECRAWL_API_KEY", raising=False)

    assert env.get_firecrawl_api_key() is None
