"""Scrape endpoints.

Routes
------
POST /scrape/url      Body: {"url": "https://...", "autoRefresh": false}
POST /scrape/check    Body: {"url": "https://..."}   → safety verdict only

Persistence is the caller's job: a successful response carries everything the
document layer stores (title, description, textContent, method, scrapedAt).
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from sitetext.scraper.models import ScrapeFailure, ScrapeRequest
from sitetext.scraper.pipeline import Scraper

router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class ScrapeRequestBody(BaseModel):
    # Plain str: malformed and blocked URLs get the pipeline's own messages.
    url: str
    auto_refresh: bool = Field(default=False, alias="autoRefresh")
    max_retries: Optional[int] = Field(default=None, alias="maxRetries", ge=0, le=5)


class CheckRequestBody(BaseModel):
    url: str


class ScrapeResponse(BaseModel):
    success: bool
    url: str
    title: str
    description: str
    textContent: str
    method: str
    scrapedAt: str
    autoRefresh: bool = False


class ScrapeFailureResponse(BaseModel):
    success: bool
    url: str
    error: str


class VerdictResponse(BaseModel):
    url: str
    allowed: bool
    reason: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _scraper(request: Request) -> Scraper:
    return request.app.state.scraper


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/url",
    response_model=ScrapeResponse,
    responses={502: {"model": ScrapeFailureResponse}},
)
def scrape_url_endpoint(body: ScrapeRequestBody, request: Request) -> Any:
    """Scrape one URL with retries.

    Returns the extracted document on success, or a 502 whose body mirrors
    ``ScrapeFailure`` (``success: false`` plus a short user-facing error).
    """
    outcome = _scraper(request).scrape_with_retry(ScrapeRequest(url=body.url), body.max_retries)
    if isinstance(outcome, ScrapeFailure):
        return JSONResponse(status_code=502, content=outcome.to_dict())
    payload = outcome.to_dict()
    payload["autoRefresh"] = body.auto_refresh
    return payload


@router.post("/check", response_model=VerdictResponse)
def check_url_endpoint(body: CheckRequestBody, request: Request) -> dict[str, Any]:
    """Run the URL safety gate without fetching anything."""
    verdict = _scraper(request).gate.validate(body.url)
    return {"url": body.url, "allowed": verdict.allowed, "reason": verdict.reason}
