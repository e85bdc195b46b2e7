"""Tier-2 fetcher: render the page in headless Chromium and extract in-page.

Slow but robust; used when Tier-1 text fails the quality gate.  Extraction
runs inside the page (``page.evaluate``) because the visibility and geometry
noise rules need computed style and layout, which a static parse does not
have.  The pattern tables come from :mod:`sitetext.scraper.zones` so both
tiers share one definition; filtering and assembly happen back in Python.

Every call launches its own browser and closes it on every exit path.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from playwright.sync_api import Browser, Page, Playwright, Request, Response, Route
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from sitetext.config import ScraperConfig
from sitetext.scraper.cancel import CancelToken
from sitetext.scraper.errors import (
    BlockedURLError,
    BrowserLaunchError,
    ExtractionError,
    HTTPStatusError,
    NetworkError,
    NetworkTimeoutError,
    ScrapeError,
)
from sitetext.scraper.models import ContentZone, PageContent, ScrapeMethod, ZoneKind
from sitetext.scraper.safety import SafetyGate
from sitetext.scraper.zones import (
    FIRST_MATCH_ONLY,
    NOISE_PATTERNS,
    NOISE_TEXT_OVERRIDE,
    REMOVE_SELECTORS,
    SCAN_ORDER,
    VALUE_LONG_CHARS,
    VALUE_MIN_CHARS,
    VALUE_PATTERNS,
    ZONE_SELECTORS,
    build_page,
)

logger = logging.getLogger(__name__)

# Container-safe: no setuid sandbox, no /dev/shm reliance, no GPU.
LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
    "--no-first-run",
    "--no-zygote",
]

VIEWPORT = {"width": 1920, "height": 1080}
MIN_BOX_PX = 10
_SETTLE_SLICE_MS = 250

# ---------------------------------------------------------------------------
# In-page extraction script
# ---------------------------------------------------------------------------
# Receives the shared pattern tables as its argument.  Returns title
# candidates, description, raw candidate zones and the body text; nothing is
# filtered by value or assembled here.
_EXTRACT_SCRIPT = """
(cfg) => {
  const noise = cfg.noisePatterns.map((p) => new RegExp(p));
  const valuable = cfg.valuePatterns.map((p) => new RegExp(p, 'i'));
  const attr = (el, name) => ((el.getAttribute && el.getAttribute(name)) || '').toLowerCase();
  const textOf = (el) => el.innerText || el.textContent || '';
  const meta = (sel) => {
    const m = document.querySelector(sel);
    return m ? m.getAttribute('content') : null;
  };
  const first = (sel) => {
    const el = document.querySelector(sel);
    return el ? textOf(el) : null;
  };

  const titleEl = document.querySelector('title');
  const titles = [
    titleEl ? titleEl.textContent : null,
    meta('meta[property="og:title"]'),
    meta('meta[name="twitter:title"]'),
    first('h1'),
    first('h2'),
  ];
  const description = meta('meta[name="description"]')
    || meta('meta[property="og:description"]')
    || meta('meta[name="twitter:description"]')
    || '';

  const isNoise = (el) => {
    const cls = attr(el, 'class');
    const id = attr(el, 'id');
    if (noise.some((re) => re.test(cls) || re.test(id))) {
      return textOf(el).trim().length <= cfg.noiseOverride;
    }
    const tag = el.tagName.toLowerCase();
    if (tag === 'br' || tag === 'wbr') {
      return false;
    }
    const style = window.getComputedStyle(el);
    if (style.display === 'contents') {
      return false;
    }
    if (style.display === 'none' || style.visibility === 'hidden') {
      return true;
    }
    const rect = el.getBoundingClientRect();
    return rect.width < cfg.minBox && rect.height < cfg.minBox;
  };

  const hasValue = (text) => {
    const t = text.trim();
    if (t.length < cfg.valueMinChars) return false;
    if (t.length > cfg.valueLongChars) return true;
    return valuable.some((re) => re.test(t));
  };

  // Judge visibility while stylesheets still apply, then remove everything.
  const doomed = [];
  if (document.body) {
    for (const el of document.body.querySelectorAll('*')) {
      if (isNoise(el)) doomed.push(el);
    }
  }
  for (const sel of cfg.removeSelectors) {
    document.querySelectorAll(sel).forEach((el) => doomed.push(el));
  }
  doomed.forEach((el) => el.remove());

  const captured = [];
  const inside = (el) => captured.some((c) => c === el || c.contains(el));
  const zones = [];
  for (const [kind, selectors, firstOnly] of cfg.zones) {
    for (const sel of selectors) {
      let matches = Array.from(document.querySelectorAll(sel));
      if (firstOnly) matches = matches.slice(0, 1);
      for (const el of matches) {
        if (inside(el)) continue;
        const text = textOf(el);
        if (!hasValue(text)) continue;
        // A container absorbs zones captured inside it earlier.
        for (let i = captured.length - 1; i >= 0; i--) {
          if (el.contains(captured[i])) {
            captured.splice(i, 1);
            zones.splice(i, 1);
          }
        }
        captured.push(el);
        zones.push({ kind, text });
      }
    }
  }

  return {
    titles,
    description,
    zones,
    bodyText: document.body ? textOf(document.body) : '',
  };
}
"""


def script_args() -> Dict[str, Any]:
    """The shared heuristic tables, serialised for :data:`_EXTRACT_SCRIPT`."""
    return {
        "noisePatterns": list(NOISE_PATTERNS),
        "valuePatterns": list(VALUE_PATTERNS),
        "removeSelectors": list(REMOVE_SELECTORS),
        "noiseOverride": NOISE_TEXT_OVERRIDE,
        "valueMinChars": VALUE_MIN_CHARS,
        "valueLongChars": VALUE_LONG_CHARS,
        "minBox": MIN_BOX_PX,
        "zones": [
            [kind.value, list(ZONE_SELECTORS[kind]), kind in FIRST_MATCH_ONLY]
            for kind in SCAN_ORDER
        ],
    }


class RequestGuard:
    """Route handler: drops heavy resources and anything the safety gate refuses.

    Applied to every request the page makes, so redirect hops and
    subresources are held to the same policy as the URL the caller passed.
    """

    def __init__(self, gate: SafetyGate, blocked_types) -> None:
        self.gate = gate
        self.blocked_types = frozenset(blocked_types)
        self.blocked_navigation: Optional[BlockedURLError] = None
        self._hosts: Dict[str, bool] = {}

    def __call__(self, route: Route, request: Request) -> None:
        if request.resource_type in self.blocked_types:
            route.abort()
            return
        try:
            self.gate.check_resolved(request.url, cache=self._hosts)
        except ScrapeError as exc:
            logger.warning("Aborted browser request to %s: %s", request.url, exc)
            if isinstance(exc, BlockedURLError) and request.is_navigation_request():
                self.blocked_navigation = exc
            route.abort("blockedbyclient")
            return
        route.continue_()


class RenderedFetcher:
    """Playwright-backed fetcher for JavaScript-rendered pages."""

    method = ScrapeMethod.TIER2

    def __init__(self, config: ScraperConfig, gate: Optional[SafetyGate] = None) -> None:
        self.config = config
        self.gate = gate or SafetyGate.from_config(config)

    @contextmanager
    def _browser(self, pw: Playwright) -> Iterator[Browser]:
        """Launch an isolated browser and guarantee it is closed."""
        try:
            browser = pw.chromium.launch(headless=True, args=LAUNCH_ARGS)
        except PlaywrightError as exc:
            raise BrowserLaunchError(f"Browser launch failed: {exc}") from exc
        try:
            yield browser
        finally:
            try:
                browser.close()
            except PlaywrightError as exc:
                logger.warning("Browser close failed: %s", exc)

    def _navigate(self, page: Page, url: str, guard: RequestGuard) -> Optional[Response]:
        timeout_ms = int(self.config.navigation_timeout * 1000)
        try:
            response = page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise NetworkTimeoutError(
                f"Navigation timeout after {self.config.navigation_timeout:g}s for {url}"
            ) from exc
        except PlaywrightError as exc:
            if guard.blocked_navigation is not None:
                raise guard.blocked_navigation from exc
            raise NetworkError(f"Network error loading {url}: {exc}") from exc

        if guard.blocked_navigation is not None:
            raise guard.blocked_navigation
        if response is not None and response.status >= 400:
            raise HTTPStatusError(response.status, response.status_text)
        return response

    def _settle(self, page: Page, token: CancelToken) -> None:
        """Give late async rendering a bounded chance to finish."""
        budget_ms = int(self.config.settle_delay * 1000)
        if budget_ms <= 0:
            return
        if self.config.settle_strategy == "networkidle":
            try:
                page.wait_for_load_state("networkidle", timeout=budget_ms)
            except PlaywrightTimeoutError:
                logger.debug("Network still busy after %dms; extracting anyway", budget_ms)
            return

        waited = 0
        while waited < budget_ms:
            token.raise_if_cancelled()
            step = min(_SETTLE_SLICE_MS, budget_ms - waited)
            page.wait_for_timeout(step)
            waited += step

    def fetch(self, url: str, cancel: Optional[CancelToken] = None) -> PageContent:
        token = cancel or CancelToken()
        token.raise_if_cancelled()
        self.gate.check_resolved(url)

        with sync_playwright() as pw, self._browser(pw) as browser:
            context = browser.new_context(
                user_agent=self.config.user_agent,
                viewport=VIEWPORT,
                extra_http_headers={"Accept-Language": self.config.accept_language},
            )
            guard = RequestGuard(self.gate, self.config.blocked_resource_types)
            context.route("**/*", guard)
            page = context.new_page()

            self._navigate(page, url, guard)
            self._settle(page, token)
            token.raise_if_cancelled()

            try:
                data = page.evaluate(_EXTRACT_SCRIPT, script_args())
            except PlaywrightError as exc:
                raise ExtractionError(f"In-page extraction failed for {url}: {exc}") from exc

        zones = [ContentZone(kind=ZoneKind(z["kind"]), text=z["text"]) for z in data.get("zones", [])]
        page_content = build_page(
            url=url,
            title_candidates=data.get("titles", []),
            description=data.get("description", ""),
            candidates=zones,
            body_text=data.get("bodyText", ""),
            max_text_chars=self.config.max_text_chars,
        )
        logger.debug(
            "Tier-2 extracted %d chars in %d zones from %s",
            len(page_content.text), len(page_content.zones), url,
        )
        return page_content
