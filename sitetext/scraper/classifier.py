"""Map low-level scrape errors to short messages for non-technical users."""

from __future__ import annotations

from typing import Optional, Tuple

from sitetext.scraper.errors import (
    HTTPStatusError,
    NetworkError,
    NetworkTimeoutError,
    ScrapeError,
    TooManyRedirectsError,
)

TIMEOUT_MESSAGE = "Website took too long to respond (Timeout)."
BLOCKED_MESSAGE = "Website is blocking automated access (403)."
NOT_FOUND_MESSAGE = "Page not found (404)."
UNREACHABLE_MESSAGE = "Network error: Unable to reach website."

_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("timeout", "timed out"), TIMEOUT_MESSAGE),
    (("403", "access denied"), BLOCKED_MESSAGE),
    (("404",), NOT_FOUND_MESSAGE),
    (("net::err", "network error", "connection", "dns resolution"), UNREACHABLE_MESSAGE),
)


def _by_type(error: ScrapeError) -> Optional[str]:
    # Our own messages embed the target URL, so they are never substring-matched.
    if isinstance(error, NetworkTimeoutError):
        return TIMEOUT_MESSAGE
    if isinstance(error, HTTPStatusError):
        return {403: BLOCKED_MESSAGE, 404: NOT_FOUND_MESSAGE}.get(error.status_code)
    if isinstance(error, NetworkError) and not isinstance(error, TooManyRedirectsError):
        return UNREACHABLE_MESSAGE
    return None


def classify(error: BaseException) -> str:
    """Return a user-facing message for *error*.

    Scraper errors are categorised by type and status code.  Anything else
    falls back to a case-insensitive substring match on the error text, first
    rule wins.  Unrecognised errors pass through as ``"Scraping failed: <msg>"``.
    """
    raw = str(error) or type(error).__name__
    if isinstance(error, ScrapeError):
        message = _by_type(error)
        return message if message is not None else f"Scraping failed: {raw}"

    lowered = raw.lower()
    for needles, message in _RULES:
        if any(n in lowered for n in needles):
            return message
    return f"Scraping failed: {raw}"
