"""Tier-1 fetcher: plain HTTP GET plus static HTML parsing.

Fast and cheap; works for server-rendered pages.  Never executes scripts, so
client-rendered pages come back nearly empty and the orchestrator escalates
them to :mod:`sitetext.scraper.browser`.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Union
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from sitetext.config import ScraperConfig
from sitetext.scraper.cancel import CancelToken
from sitetext.scraper.errors import (
    ContentTooLargeError,
    HTTPStatusError,
    InvalidURLError,
    NetworkError,
    NetworkTimeoutError,
    TooManyRedirectsError,
    UnsupportedContentTypeError,
)
from sitetext.scraper.models import PageContent, ScrapeMethod
from sitetext.scraper.safety import SafetyGate
from sitetext.scraper.zones import extract_page, parse_html

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = frozenset({"text/html", "application/xhtml+xml", "text/plain"})


class Fetcher(Protocol):
    """One fetch strategy.  The orchestrator tries these in order."""

    method: ScrapeMethod

    def fetch(self, url: str, cancel: Optional[CancelToken] = None) -> PageContent:
        ...


class StaticFetcher:
    """httpx GET with manual, re-validated redirects and a body size cap."""

    method = ScrapeMethod.TIER1

    def __init__(self, config: ScraperConfig, gate: Optional[SafetyGate] = None) -> None:
        self.config = config
        self.gate = gate or SafetyGate.from_config(config)

    def _headers(self) -> dict:
        return {
            "User-Agent": self.config.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": self.config.accept_language,
        }

    def fetch_html(self, url: str, cancel: Optional[CancelToken] = None) -> Union[str, bytes]:
        """GET *url* and return the body.

        Redirects are followed by hand so every hop passes the safety gate,
        including DNS resolution, before a connection is opened.

        Returns:
            ``str`` when the server declared a charset, raw ``bytes``
            otherwise (BeautifulSoup sniffs the encoding).

        Raises:
            BlockedURLError: A hop targets a forbidden host.
            HTTPStatusError: Final response is not 2xx.
            NetworkTimeoutError / NetworkError: Transport failures.
            TooManyRedirectsError, UnsupportedContentTypeError,
            ContentTooLargeError.
        """
        token = cancel or CancelToken()
        current = url
        with httpx.Client(
            headers=self._headers(),
            timeout=self.config.request_timeout,
            follow_redirects=False,
        ) as client:
            for _hop in range(self.config.max_redirects + 1):
                token.raise_if_cancelled()
                self.gate.check_resolved(current)
                try:
                    with client.stream("GET", current) as response:
                        if response.is_redirect:
                            current = urljoin(str(response.url), response.headers["location"])
                            logger.debug("Redirect %s -> %s", response.url, current)
                            continue
                        return self._read_body(response, token)
                except httpx.TimeoutException as exc:
                    raise NetworkTimeoutError(f"Request timeout - {current} took too long to respond") from exc
                except httpx.InvalidURL as exc:
                    raise InvalidURLError(f"Invalid URL format: {exc}") from exc
                except httpx.HTTPError as exc:
                    raise NetworkError(f"Network error fetching {current}: {exc}") from exc

        raise TooManyRedirectsError(f"More than {self.config.max_redirects} redirects for {url}")

    def _read_body(self, response: httpx.Response, token: CancelToken) -> Union[str, bytes]:
        if not response.is_success:
            raise HTTPStatusError(response.status_code, response.reason_phrase)

        content_type = response.headers.get("content-type", "")
        mime = content_type.split(";", 1)[0].strip().lower()
        if mime and mime not in ALLOWED_CONTENT_TYPES:
            raise UnsupportedContentTypeError(f"Unsupported content type: {content_type}")

        limit = self.config.max_content_bytes
        declared = response.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > limit:
            raise ContentTooLargeError(f"Response is {declared} bytes; limit is {limit}")

        chunks = []
        size = 0
        for chunk in response.iter_bytes():
            token.raise_if_cancelled()
            size += len(chunk)
            if size > limit:
                raise ContentTooLargeError(f"Response exceeded {limit} bytes")
            chunks.append(chunk)
        body = b"".join(chunks)

        charset = response.charset_encoding
        if not charset:
            return body
        try:
            return body.decode(charset, errors="replace")
        except LookupError:
            return body

    def fetch_static(self, url: str, cancel: Optional[CancelToken] = None) -> BeautifulSoup:
        """Fetch *url* and parse it into a BeautifulSoup tree."""
        return parse_html(self.fetch_html(url, cancel))

    def fetch(self, url: str, cancel: Optional[CancelToken] = None) -> PageContent:
        soup = self.fetch_static(url, cancel)
        page = extract_page(soup, url, max_text_chars=self.config.max_text_chars)
        logger.debug("Tier-1 extracted %d chars in %d zones from %s", len(page.text), len(page.zones), url)
        return page
