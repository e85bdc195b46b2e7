"""sitetext CLI: scrape a page or check a URL from the terminal.

Usage:
    python cli/main.py --help

Commands:
    scrape     → full pipeline (safety gate, Tier-1, Tier-2 fallback, retries)
    check-url  → safety gate only, no network access
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from sitetext.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import json
from typing import Optional

import typer

from sitetext.config import settings
from sitetext.logging_config import configure_logging
from sitetext.scraper.models import ScrapeFailure, ScrapeRequest
from sitetext.scraper.pipeline import Scraper

app = typer.Typer(
    name="sitetext",
    help="Extract clean, sectioned text from a web page.",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
) -> None:
    """Configure logging before any command runs."""
    configure_logging("DEBUG" if verbose else settings.log_level, settings.log_format)


# ---------------------------------------------------------------------------
# Scrape
# ---------------------------------------------------------------------------
@app.command("scrape")
def scrape(
    url: str = typer.Option(..., help="URL to scrape."),
    retries: Optional[int] = typer.Option(
        None, min=0, help="Retries after the first attempt (default from settings)."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON."),
) -> None:
    """Scrape a URL and print the extracted text to stdout."""
    scraper = Scraper(settings.scraper_config())
    outcome = scraper.scrape_with_retry(ScrapeRequest(url=url), retries)

    if as_json:
        typer.echo(json.dumps(outcome.to_dict(), indent=2, ensure_ascii=False))
        if isinstance(outcome, ScrapeFailure):
            raise typer.Exit(1)
        return

    if isinstance(outcome, ScrapeFailure):
        typer.echo(f"[scrape] Failed: {outcome.error}", err=True)
        raise typer.Exit(1)

    typer.echo(f"[scrape] Title  : {outcome.title}")
    typer.echo(f"[scrape] Method : {outcome.method.value}")
    typer.echo(f"[scrape] Chars  : {len(outcome.text_content)}")
    typer.echo("")
    typer.echo(outcome.text_content)


# ---------------------------------------------------------------------------
# Safety gate
# ---------------------------------------------------------------------------
@app.command("check-url")
def check_url(
    url: str = typer.Option(..., help="URL to check against the safety policy."),
) -> None:
    """Report whether a URL passes validation and the SSRF blocklist."""
    verdict = Scraper(settings.scraper_config()).gate.validate(url)
    if verdict.allowed:
        typer.echo(f"[check-url] allowed: {url}")
        return
    typer.echo(f"[check-url] rejected: {verdict.reason}")
    raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
