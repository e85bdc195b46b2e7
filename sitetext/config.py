"""Centralised settings for sitetext.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).

The scraping pipeline itself never reads :data:`settings` directly; it takes
an immutable :class:`ScraperConfig` built by :meth:`Settings.scraper_config`,
so tests can construct one with overridden limits.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_BLOCKED_HOSTS: Tuple[str, ...] = (
    "localhost",
    "127.0.0.1",
    "0.0.0.0",
    "::1",
    "169.254.169.254",
    "metadata.google.internal",
)


@dataclass(frozen=True)
class ScraperConfig:
    """Limits and policy for one :class:`~sitetext.scraper.pipeline.Scraper`."""

    request_timeout: float = 15.0
    navigation_timeout: float = 90.0
    settle_delay: float = 3.0
    settle_strategy: str = "fixed"
    max_content_bytes: int = 10 * 1024 * 1024
    max_redirects: int = 5
    max_text_chars: int = 50_000
    max_retries: int = 2
    retry_base_delay: float = 2.0
    resolve_dns: bool = True
    user_agent: str = BROWSER_USER_AGENT
    accept_language: str = "en-US,en;q=0.5"
    blocked_hosts: Tuple[str, ...] = DEFAULT_BLOCKED_HOSTS
    blocked_resource_types: Tuple[str, ...] = ("image", "font", "media")

    def __post_init__(self) -> None:
        if self.settle_strategy not in ("fixed", "networkidle"):
            raise ValueError(
                f"settle_strategy must be 'fixed' or 'networkidle', got {self.settle_strategy!r}"
            )
        if self.max_redirects < 0 or self.max_retries < 0:
            raise ValueError("max_redirects and max_retries must be non-negative")


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO")
    )
    log_format: str = field(
        default_factory=lambda: os.environ.get("LOG_FORMAT", "text")
    )

    # ------------------------------------------------------------------
    # Tier-1 (static HTTP fetch)
    # ------------------------------------------------------------------
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("SCRAPER_REQUEST_TIMEOUT", "15.0"))
    )
    max_content_bytes: int = field(
        default_factory=lambda: int(os.environ.get("SCRAPER_MAX_CONTENT_BYTES", str(10 * 1024 * 1024)))
    )
    max_redirects: int = field(
        default_factory=lambda: int(os.environ.get("SCRAPER_MAX_REDIRECTS", "5"))
    )

    # ------------------------------------------------------------------
    # Tier-2 (headless browser)
    # ------------------------------------------------------------------
    navigation_timeout: float = field(
        default_factory=lambda: float(os.environ.get("SCRAPER_NAVIGATION_TIMEOUT", "90.0"))
    )
    settle_delay: float = field(
        default_factory=lambda: float(os.environ.get("SCRAPER_SETTLE_DELAY", "3.0"))
    )
    settle_strategy: str = field(
        default_factory=lambda: os.environ.get("SCRAPER_SETTLE_STRATEGY", "fixed")
    )

    # ------------------------------------------------------------------
    # Extraction / retry / safety
    # ------------------------------------------------------------------
    max_text_chars: int = field(
        default_factory=lambda: int(os.environ.get("SCRAPER_MAX_TEXT_CHARS", "50000"))
    )
    max_retries: int = field(
        default_factory=lambda: int(os.environ.get("SCRAPER_MAX_RETRIES", "2"))
    )
    retry_base_delay: float = field(
        default_factory=lambda: float(os.environ.get("SCRAPER_RETRY_BASE_DELAY", "2.0"))
    )
    resolve_dns: bool = field(
        default_factory=lambda: _env_bool("SCRAPER_RESOLVE_DNS", "true")
    )

    def scraper_config(self) -> ScraperConfig:
        """Snapshot the scraper-related settings into an immutable config."""
        return ScraperConfig(
            request_timeout=self.request_timeout,
            navigation_timeout=self.navigation_timeout,
            settle_delay=self.settle_delay,
            settle_strategy=self.settle_strategy,
            max_content_bytes=self.max_content_bytes,
            max_redirects=self.max_redirects,
            max_text_chars=self.max_text_chars,
            max_retries=self.max_retries,
            retry_base_delay=self.retry_base_delay,
            resolve_dns=self.resolve_dns,
        )


# Module-level singleton, import this everywhere:
#   from sitetext.config import settings
settings = Settings()
