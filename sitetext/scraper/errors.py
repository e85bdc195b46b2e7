"""Exception taxonomy for the scraper.

Every failure that leaves a fetcher is one of these.  ``retryable`` tells the
retry controller whether another attempt could plausibly change the outcome.
"""

from __future__ import annotations


class ScrapeError(Exception):
    """Base class for all scraper failures."""

    retryable: bool = False


class InvalidURLError(ScrapeError):
    """The input is not a well-formed absolute http(s) URL."""


class BlockedURLError(ScrapeError):
    """The URL targets a host the safety policy forbids."""


class NetworkError(ScrapeError):
    """The origin could not be reached."""

    retryable = True


class NetworkTimeoutError(NetworkError):
    pass


class TooManyRedirectsError(NetworkError):
    retryable = False


class HTTPStatusError(ScrapeError):
    """The origin answered with a non-success status code."""

    def __init__(self, status_code: int, reason: str = "") -> None:
        self.status_code = status_code
        message = f"HTTP {status_code}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.status_code >= 500 or self.status_code == 429


class UnsupportedContentTypeError(ScrapeError):
    pass


class ContentTooLargeError(ScrapeError):
    pass


class BrowserLaunchError(ScrapeError):
    """The headless browser failed to start (often transient exhaustion)."""

    retryable = True


class ExtractionError(ScrapeError):
    """The in-page extraction script failed (page navigated away, crashed)."""

    retryable = True


class InsufficientContentError(ScrapeError):
    """Both tiers ran and produced no text at all."""

    retryable = True


class ScrapeCancelledError(ScrapeError):
    pass
