"""Scraper package: URL validation, tiered fetch and zone-based extraction."""

from sitetext.scraper.cancel import CancelToken
from sitetext.scraper.classifier import classify
from sitetext.scraper.models import (
    ContentZone,
    PageContent,
    SafetyVerdict,
    ScrapeFailure,
    ScrapeMethod,
    ScrapeRequest,
    ScrapeResult,
    ZoneKind,
)
from sitetext.scraper.pipeline import Scraper, scrape_url, scrape_with_retry
from sitetext.scraper.quality import is_meaningful
from sitetext.scraper.safety import SafetyGate
from sitetext.scraper.zones import extract_zones

__all__ = [
    "CancelToken",
    "ContentZone",
    "PageContent",
    "SafetyGate",
    "SafetyVerdict",
    "ScrapeFailure",
    "ScrapeMethod",
    "ScrapeRequest",
    "ScrapeResult",
    "Scraper",
    "ZoneKind",
    "classify",
    "extract_zones",
    "is_meaningful",
    "scrape_url",
    "scrape_with_retry",
]
