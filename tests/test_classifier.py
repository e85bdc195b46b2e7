"""Tests for the user-facing error classifier."""

from __future__ import annotations

import pytest

from sitetext.scraper.classifier import classify
from sitetext.scraper.errors import (
    BlockedURLError,
    ExtractionError,
    HTTPStatusError,
    InsufficientContentError,
    InvalidURLError,
    NetworkError,
    NetworkTimeoutError,
    TooManyRedirectsError,
)


class TestClassify:
    @pytest.mark.parametrize(
        "error,expected",
        [
            (NetworkTimeoutError("Request timeout - slow.example took too long"), "Website took too long to respond (Timeout)."),
            (HTTPStatusError(403, "Forbidden"), "Website is blocking automated access (403)."),
            (RuntimeError("ACCESS DENIED by origin"), "Website is blocking automated access (403)."),
            (HTTPStatusError(404, "Not Found"), "Page not found (404)."),
            (NetworkError("net::ERR_NAME_NOT_RESOLVED at https://x.example"), "Network error: Unable to reach website."),
            (NetworkError("Network error fetching https://x.example: connection refused"), "Network error: Unable to reach website."),
            (NetworkError("DNS resolution failed for x.example: no addresses"), "Network error: Unable to reach website."),
        ],
    )
    def test_categories(self, error: Exception, expected: str) -> None:
        assert classify(error) == expected

    def test_timeout_wins_over_status(self) -> None:
        assert classify(RuntimeError("404 page timed out")) == "Website took too long to respond (Timeout)."

    def test_default_passes_message_through(self) -> None:
        assert classify(InvalidURLError("Invalid URL format")) == "Scraping failed: Invalid URL format"

    def test_blocked_url_message(self) -> None:
        err = BlockedURLError("URL is not allowed (security restriction): 10.0.0.5")
        assert classify(err) == "Scraping failed: URL is not allowed (security restriction): 10.0.0.5"

    def test_empty_message_uses_type_name(self) -> None:
        assert classify(ValueError()) == "Scraping failed: ValueError"

    @pytest.mark.parametrize(
        "error,expected",
        [
            (
                NetworkError("Network error fetching https://shop.example.com/item-4041: connection refused"),
                "Network error: Unable to reach website.",
            ),
            (
                NetworkTimeoutError("Navigation timeout after 90s for https://example.com/403-help"),
                "Website took too long to respond (Timeout).",
            ),
            (
                HTTPStatusError(500, "Internal Server Error"),
                "Scraping failed: HTTP 500: Internal Server Error",
            ),
            (
                ExtractionError("In-page extraction failed for https://example.com/timeout-404"),
                "Scraping failed: In-page extraction failed for https://example.com/timeout-404",
            ),
            (
                InsufficientContentError("No extractable text at https://example.com/connection"),
                "Scraping failed: No extractable text at https://example.com/connection",
            ),
            (
                TooManyRedirectsError("More than 5 redirects for https://example.com/"),
                "Scraping failed: More than 5 redirects for https://example.com/",
            ),
        ],
    )
    def test_scraper_errors_classified_by_type_not_url(self, error: Exception, expected: str) -> None:
        assert classify(error) == expected
