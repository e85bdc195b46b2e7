"""FastAPI application factory.

Lifespan
--------
On startup the app configures logging and builds one :class:`Scraper` from
the process settings, shared by all requests via ``request.app.state.scraper``.
The scraper holds only immutable configuration; every request gets its own
HTTP client and browser, so sharing it across worker threads is safe.

Routers
-------
    /scrape   URL scraping and safety checks
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sitetext import __version__
from sitetext.config import settings
from sitetext.logging_config import configure_logging
from sitetext.scraper.pipeline import Scraper

from sitetext.api.routers import scrape as scrape_router


def create_app(scraper: Optional[Scraper] = None) -> FastAPI:
    """Return a fully-configured FastAPI application instance.

    Args:
        scraper: Pre-built scraper (tests pass one with stub fetchers).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.log_level, settings.log_format)
        app.state.scraper = scraper or Scraper(settings.scraper_config())
        yield

    app = FastAPI(
        title="sitetext API",
        description=(
            "Turns a single web page into clean, sectioned text for indexing. "
            "Static fetch first, headless-browser render as fallback."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    # Allow browser frontends on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(scrape_router.router, prefix="/scrape", tags=["scrape"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn sitetext.api.app:app --reload
app = create_app()
