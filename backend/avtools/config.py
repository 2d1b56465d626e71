# avtools/config.py
"""
Process-wide settings.

Reads backend/.env when present (local dev), then the environment. The
record store base id and API key are required; everything else has a default.
get_settings() is cached, so the values are resolved once per process.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigurationError

DOTENV_PATH = Path(__file__).resolve().parent.parent / ".env"

AIRTABLE_API_URL = "https://api.airtable.com/v0"
DEFAULT_CORS_ORIGINS = ("http://localhost:3000", "http://127.0.0.1:3000")

REQUIRED_ENV = ("AIRTABLE_BASE_ID", "AIRTABLE_API_KEY")


@dataclass(frozen=True)
class Settings:
    base_id: str
    api_key: str
    api_url: str = AIRTABLE_API_URL
    table_products: str = "Products"
    table_categories: str = "Categories"
    table_reviews: str = "Reviews"
    table_leads: str = "Leads"
    # Some bases name the moderation checkbox "Approved?"
    review_approved_field: str = "Approved"
    timeout_seconds: float = 30.0
    cors_origins: Tuple[str, ...] = DEFAULT_CORS_ORIGINS


def _split_csv(raw: Optional[str]) -> Tuple[str, ...]:
    if not raw:
        return DEFAULT_CORS_ORIGINS
    return tuple(p.strip() for p in raw.split(",") if p.strip())


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from `env` (defaults to os.environ).
    Raises ConfigurationError listing every missing required variable.
    """
    env = os.environ if env is None else env

    missing = [k for k in REQUIRED_ENV if not (env.get(k) or "").strip()]
    if missing:
        raise ConfigurationError(f"Missing required environment: {', '.join(missing)}")

    return Settings(
        base_id=env["AIRTABLE_BASE_ID"].strip(),
        api_key=env["AIRTABLE_API_KEY"].strip(),
        api_url=(env.get("AIRTABLE_API_URL") or AIRTABLE_API_URL).rstrip("/"),
        table_products=env.get("AIRTABLE_TABLE_PRODUCTS") or "Products",
        table_categories=env.get("AIRTABLE_TABLE_CATEGORIES") or "Categories",
        table_reviews=env.get("AIRTABLE_TABLE_REVIEWS") or "Reviews",
        table_leads=env.get("AIRTABLE_TABLE_LEADS") or "Leads",
        review_approved_field=env.get("AIRTABLE_REVIEW_APPROVED_FIELD") or "Approved",
        timeout_seconds=float(env.get("AIRTABLE_TIMEOUT_SECONDS") or 30.0),
        cors_origins=_split_csv(env.get("CORS_ORIGINS")),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    if DOTENV_PATH.exists():
        load_dotenv(DOTENV_PATH, override=False)
    return load_settings()
