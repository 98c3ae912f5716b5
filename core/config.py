"""
core/config.py

Environment-driven settings for the data source, the analysis client and the API.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

SHEET_ID = "1XoQj-jSUcds5bNbR1mjVFKUgwwG1RYET_6SVYPQMbSU"
DEFAULT_SHEET_CSV_URL = f"https://docs.google.com/spreadsheets/d/{SHEET_ID}/export?format=csv"
DEFAULT_FETCH_TIMEOUT = 15.0
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


@dataclass(frozen=True)
class Settings:
    sheet_csv_url: str = DEFAULT_SHEET_CSV_URL
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    openai_api_key: Optional[str] = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))


def _get_float_env(name: str, default: float) -> float:
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return default
    try:
        value = float(raw_value)
    except ValueError:
        return default
    return value if value > 0 else default


def _get_list_env(name: str, default: List[str]) -> List[str]:
    raw_value = os.getenv(name)
    if raw_value is None:
        return list(default)
    values = [v.strip() for v in raw_value.split(",") if v.strip()]
    return values or list(default)


def load_settings() -> Settings:
    """Read settings from the environment without caching."""
    return Settings(
        sheet_csv_url=(os.getenv("SHEET_CSV_URL") or "").strip() or DEFAULT_SHEET_CSV_URL,
        fetch_timeout=_get_float_env("SHEET_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT),
        openai_api_key=(os.getenv("OPENAI_API_KEY") or "").strip() or None,
        openai_model=(os.getenv("OPENAI_MODEL") or "").strip() or DEFAULT_OPENAI_MODEL,
        cors_origins=_get_list_env("DASHBOARD_CORS_ORIGINS", DEFAULT_CORS_ORIGINS),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
