"""Centralised settings for the web scraper backend.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

_DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
]


def _env_float(key: str, default: float) -> float:
    """Read a float from the environment, keeping *default* on bad input."""
    try:
        return float(os.environ.get(key, default))
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    try:
        return int(os.environ.get(key, default))
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.environ.get(key, "").strip().lower()
    if value in ("1", "t", "true", "yes", "on"):
        return True
    if value in ("0", "f", "false", "no", "off"):
        return False
    return default


def _env_list(key: str, default: List[str]) -> List[str]:
    value = os.environ.get(key, "")
    items = [item.strip() for item in value.split(",") if item.strip()]
    return items or list(default)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------
    host: str = field(default_factory=lambda: os.environ.get("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _env_int("PORT", 8080))
    service_name: str = field(
        default_factory=lambda: os.environ.get("SERVICE_NAME", "web-scraper-backend")
    )
    log_level: str = field(default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO"))

    # ------------------------------------------------------------------
    # Static fetcher
    # ------------------------------------------------------------------
    scraper_delay: float = field(
        default_factory=lambda: _env_float("SCRAPER_DELAY_S", 2.0)
    )
    scraper_delay_jitter: float = field(
        default_factory=lambda: _env_float("SCRAPER_DELAY_JITTER_S", 1.0)
    )
    user_agents: List[str] = field(
        default_factory=lambda: _env_list("SCRAPER_USER_AGENTS", _DEFAULT_USER_AGENTS)
    )
    request_timeout: float = field(
        default_factory=lambda: _env_float("REQUEST_TIMEOUT_S", 15.0)
    )
    # When false, deeper crawl pages disallowed by robots.txt are skipped and a
    # warning is recorded if the requested page itself is disallowed.
    ignore_robots: bool = field(
        default_factory=lambda: _env_bool("SCRAPER_IGNORE_ROBOTS", False)
    )

    # ------------------------------------------------------------------
    # Dynamic (headless browser) fetcher
    # ------------------------------------------------------------------
    render_timeout: float = field(
        default_factory=lambda: _env_float("RENDER_TIMEOUT_S", 10.0)
    )
    render_settle_delay: float = field(
        default_factory=lambda: _env_float("RENDER_SETTLE_S", 2.0)
    )

    # ------------------------------------------------------------------
    # Whole scrape
    # ------------------------------------------------------------------
    scrape_timeout: float = field(
        default_factory=lambda: _env_float("SCRAPER_TIMEOUT_S", 30.0)
    )

    @property
    def primary_user_agent(self) -> str:
        """User agent presented by the headless browser."""
        return self.user_agents[0] if self.user_agents else _DEFAULT_USER_AGENTS[0]


# Module-level singleton; import this everywhere:
#   from webscraper.config import settings
settings = Settings()
