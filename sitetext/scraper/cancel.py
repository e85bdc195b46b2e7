"""Cooperative cancellation for long-running scrapes."""

from __future__ import annotations

import threading

from sitetext.scraper.errors import ScrapeCancelledError


class CancelToken:
    """A thread-safe flag checked at every suspension point of a scrape.

    An upstream deadline or rate limiter calls :meth:`cancel`; the pipeline
    notices at the next check and unwinds with :class:`ScrapeCancelledError`.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ScrapeCancelledError("Scrape cancelled by caller")

    def wait(self, seconds: float) -> bool:
        """Block for up to *seconds*; return ``True`` if cancelled meanwhile."""
        return self._event.wait(seconds)
