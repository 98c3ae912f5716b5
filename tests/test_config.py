"""Tests for environment-driven settings."""
from core.config import DEFAULT_CORS_ORIGINS, DEFAULT_FETCH_TIMEOUT, DEFAULT_SHEET_CSV_URL, load_settings


def test_defaults(monkeypatch):
    for name in ("SHEET_CSV_URL", "SHEET_FETCH_TIMEOUT", "OPENAI_API_KEY", "OPENAI_MODEL", "DASHBOARD_CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.sheet_csv_url == DEFAULT_SHEET_CSV_URL
    assert settings.fetch_timeout == DEFAULT_FETCH_TIMEOUT
    assert settings.openai_api_key is None
    assert settings.cors_origins == DEFAULT_CORS_ORIGINS


def test_overrides(monkeypatch):
    monkeypatch.setenv("SHEET_CSV_URL", "https://example.test/x.csv")
    monkeypatch.setenv("SHEET_FETCH_TIMEOUT", "2.5")
    monkeypatch.setenv("OPENAI_MODEL", "gpt-test")
    monkeypatch.setenv("DASHBOARD_CORS_ORIGINS", "http://a, http://b ,")
    settings = load_settings()
    assert settings.sheet_csv_url == "https://example.test/x.csv"
    assert settings.fetch_timeout == 2.5
    assert settings.openai_model == "gpt-test"
    assert settings.cors_origins == ["http://a", "http://b"]


def test_bad_timeout_falls_back(monkeypatch):
    monkeypatch.setenv("SHEET_FETCH_TIMEOUT", "soon")
    assert load_settings().fetch_timeout == DEFAULT_FETCH_TIMEOUT
    monkeypatch.setenv("SHEET_FETCH_TIMEOUT", "-1")
    assert load_settings().fetch_timeout == DEFAULT_FETCH_TIMEOUT
