"""Scrape orchestration: safety gate → Tier-1 → quality gate → Tier-2, with retries.

``Scraper.scrape_url`` is a single attempt and may raise a
:class:`~sitetext.scraper.errors.ScrapeError`.  ``Scraper.scrape_with_retry``
wraps it in a bounded exponential-backoff loop and never raises; callers get
either a :class:`ScrapeResult` or a :class:`ScrapeFailure`.
"""

from __future__ import annotations

import logging
import time
from typing import List, Optional, Sequence, Union

from sitetext.config import ScraperConfig, settings
from sitetext.scraper.browser import RenderedFetcher
from sitetext.scraper.cancel import CancelToken
from sitetext.scraper.classifier import classify
from sitetext.scraper.errors import (
    BlockedURLError,
    InsufficientContentError,
    ScrapeCancelledError,
    ScrapeError,
)
from sitetext.scraper.fetcher import Fetcher, StaticFetcher
from sitetext.scraper.models import ScrapeFailure, ScrapeOutcome, ScrapeRequest, ScrapeResult
from sitetext.scraper.quality import is_meaningful
from sitetext.scraper.safety import SafetyGate

logger = logging.getLogger(__name__)

URLInput = Union[str, ScrapeRequest]


def _target(url: URLInput) -> str:
    return url.url if isinstance(url, ScrapeRequest) else url


class Scraper:
    """Turns one URL into clean, sectioned text.

    Args:
        config: Immutable limits (timeouts, size caps, retry policy).
        fetchers: Strategies tried in order; defaults to
            ``[StaticFetcher, RenderedFetcher]``.  Only the last one's output
            is accepted without passing the quality gate.
        gate: Safety gate shared by the orchestrator and default fetchers.
    """

    def __init__(
        self,
        config: Optional[ScraperConfig] = None,
        fetchers: Optional[Sequence[Fetcher]] = None,
        gate: Optional[SafetyGate] = None,
    ) -> None:
        self.config = config or settings.scraper_config()
        self.gate = gate or SafetyGate.from_config(self.config)
        if fetchers is None:
            fetchers = [
                StaticFetcher(self.config, self.gate),
                RenderedFetcher(self.config, self.gate),
            ]
        if not fetchers:
            raise ValueError("Scraper needs at least one fetcher")
        self.fetchers: List[Fetcher] = list(fetchers)

    # ------------------------------------------------------------------
    # Single attempt
    # ------------------------------------------------------------------

    def scrape_url(self, url: URLInput, cancel: Optional[CancelToken] = None) -> ScrapeResult:
        """Run one attempt through the tiers.

        Raises:
            InvalidURLError / BlockedURLError: Before any network access.
            ScrapeError: Whatever the final tier raised.
            InsufficientContentError: The final tier produced no text at all.
        """
        url = _target(url)
        token = cancel or CancelToken()
        self.gate.check(url)
        logger.info("Starting scrape for %s", url)

        last = len(self.fetchers) - 1
        for index, fetcher in enumerate(self.fetchers):
            token.raise_if_cancelled()
            tier = fetcher.method.value
            try:
                page = fetcher.fetch(url, token)
            except (BlockedURLError, ScrapeCancelledError):
                raise
            except ScrapeError as exc:
                if index == last:
                    raise
                logger.info("%s failed for %s, falling back: %s", tier, url, exc)
                continue

            if index < last and not is_meaningful(page.text):
                logger.info(
                    "%s content not meaningful for %s (%d chars), falling back",
                    tier, url, len(page.text),
                )
                continue

            if not page.text.strip():
                raise InsufficientContentError(f"No extractable text at {url}")
            if not is_meaningful(page.text):
                logger.warning("Returning marginal %s content for %s (%d chars)", tier, url, len(page.text))

            logger.info("%s success for %s - %d chars", tier, url, len(page.text))
            return ScrapeResult(
                url=url,
                title=page.title,
                description=page.description,
                text_content=page.text,
                method=fetcher.method,
            )

        # Unreachable: the last fetcher either returns or raises.
        raise InsufficientContentError(f"No extractable text at {url}")

    # ------------------------------------------------------------------
    # Retry loop
    # ------------------------------------------------------------------

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after failed *attempt* (1-based)."""
        return self.config.retry_base_delay * (2 ** (attempt - 1))

    def _sleep(self, seconds: float, cancel: Optional[CancelToken]) -> None:
        if cancel is None:
            time.sleep(seconds)
        elif cancel.wait(seconds):
            raise ScrapeCancelledError("Scrape cancelled by caller")

    def scrape_with_retry(
        self,
        url: URLInput,
        max_retries: Optional[int] = None,
        cancel: Optional[CancelToken] = None,
    ) -> ScrapeOutcome:
        """Run :meth:`scrape_url` up to ``max_retries + 1`` times.

        *url* is a plain string or a :class:`ScrapeRequest`.

        Non-retryable errors (bad or blocked URL, 4xx, wrong content type,
        cancellation) stop immediately.  Never raises.
        """
        if max_retries is None:
            max_retries = self.config.max_retries
        attempts = max(0, max_retries) + 1
        url = _target(url)
        label = url if isinstance(url, str) else repr(url)

        for attempt in range(1, attempts + 1):
            if attempt > 1:
                logger.info("Retry attempt %d/%d for %s", attempt, attempts, url)
            try:
                return self.scrape_url(url, cancel)
            except ScrapeError as exc:
                logger.warning("Attempt %d failed for %s: %s", attempt, url, exc)
                error: BaseException = exc
                retryable = exc.retryable
            except Exception as exc:
                logger.exception("Attempt %d crashed for %s", attempt, url)
                error = exc
                retryable = True

            if not retryable or attempt == attempts:
                return ScrapeFailure(url=label, error=classify(error))

            try:
                self._sleep(self.backoff_delay(attempt), cancel)
            except ScrapeCancelledError as exc:
                return ScrapeFailure(url=label, error=classify(exc))

        # Unreachable: the loop always returns.
        return ScrapeFailure(url=label, error="Scraping failed")


def default_scraper() -> Scraper:
    """A scraper configured from the process :data:`~sitetext.config.settings`."""
    return Scraper(settings.scraper_config())


def scrape_url(url: URLInput, cancel: Optional[CancelToken] = None) -> ScrapeResult:
    """Single attempt with default settings; may raise ``ScrapeError``."""
    return default_scraper().scrape_url(url, cancel)


def scrape_with_retry(
    url: URLInput,
    max_retries: Optional[int] = None,
    cancel: Optional[CancelToken] = None,
) -> ScrapeOutcome:
    """Retrying scrape with default settings; never raises."""
    return default_scraper().scrape_with_retry(url, max_retries, cancel)
