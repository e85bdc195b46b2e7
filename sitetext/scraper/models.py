"""Data models for the scraper pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Union

TITLE_MAX_CHARS = 500
DESCRIPTION_MAX_CHARS = 1000


class ZoneKind(str, Enum):
    """Semantic region of a page, in the order it is scanned."""

    NAVIGATION = "navigation"
    MAIN = "main"
    SIDEBAR = "sidebar"
    FOOTER = "footer"
    BODY = "body"

    @property
    def priority(self) -> int:
        """Assembly rank; lower comes first."""
        return _PRIORITIES[self]

    @property
    def marker(self) -> str:
        return f"=== {self.value.upper()} SECTION ==="


_PRIORITIES = {
    ZoneKind.MAIN: 1,
    ZoneKind.SIDEBAR: 2,
    ZoneKind.NAVIGATION: 3,
    ZoneKind.FOOTER: 4,
    ZoneKind.BODY: 5,
}


class ScrapeMethod(str, Enum):
    TIER1 = "tier1"
    TIER2 = "tier2"


@dataclass(frozen=True)
class ScrapeRequest:
    url: str


@dataclass
class ContentZone:
    """One classified region of a page and its visible text."""

    kind: ZoneKind
    text: str
    priority: int = 0

    def __post_init__(self) -> None:
        if not self.priority:
            self.priority = self.kind.priority


@dataclass
class PageContent:
    """What a single fetch tier extracted from a single page."""

    url: str
    title: str
    text: str
    description: str = ""
    zones: List[ContentZone] = field(default_factory=list)


@dataclass
class ScrapeResult:
    """A successful scrape.  Owned by the caller once returned."""

    url: str
    title: str
    text_content: str
    method: ScrapeMethod
    description: str = ""
    scraped_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    success: bool = field(default=True, init=False)

    def __post_init__(self) -> None:
        self.title = self.title[:TITLE_MAX_CHARS]
        self.description = self.description[:DESCRIPTION_MAX_CHARS]

    def to_dict(self) -> Dict[str, Any]:
        """Return the camelCase shape the ingestion layer stores."""
        return {
            "success": True,
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "textContent": self.text_content,
            "method": self.method.value,
            "scrapedAt": self.scraped_at.isoformat(),
        }


@dataclass
class ScrapeFailure:
    """Terminal failure with a short, user-facing message."""

    url: str
    error: str
    success: bool = field(default=False, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "url": self.url, "error": self.error}


@dataclass(frozen=True)
class SafetyVerdict:
    """Outcome of the URL safety gate.  Computed per request, never cached."""

    allowed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.allowed


ScrapeOutcome = Union[ScrapeResult, ScrapeFailure]
