"""Zone extraction: partition a page into semantic zones and assemble text.

The heuristics here are shared by both fetch tiers.  Tier-1 runs them over a
static BeautifulSoup tree via :func:`extract_page`; Tier-2 runs the noise and
zone-discovery half inside the browser (it needs computed style and layout)
and hands raw candidate zones back to :func:`build_page`, so value filtering,
ordering, title selection and cleanup are the same code on both paths.

The static tier cannot see ``display:none`` or element geometry, so it only
applies class/id pattern and text-length noise rules.
"""

from __future__ import annotations

import copy
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from bs4 import BeautifulSoup, NavigableString, Tag

from sitetext.scraper.models import ContentZone, PageContent, ZoneKind

# ---------------------------------------------------------------------------
# Shared pattern tables (also shipped to the in-browser script)
# ---------------------------------------------------------------------------

REMOVE_SELECTORS = (
    "script",
    "style",
    "noscript",
    "iframe",
    "template",
    "meta",
    'link[rel="stylesheet"]',
)

# Matched against lower-cased class and id attributes.  Kept to the regex
# subset JavaScript understands, since the same sources run in the browser.
NOISE_PATTERNS = (
    r"\bads?\b",
    r"\bgoogle-ad",
    r"\bdoubleclick",
    r"\badvertis",
    r"\badsense",
    r"\badroll",
    r"\btracking",
    r"\banalytics",
    r"\bpopup",
    r"\boverlay",
    r"\bmodal-backdrop",
    r"\bcookie-consent",
    r"\bcookie-banner",
    r"\bgdpr-notice",
    r"\bshare-button",
    r"\bsocial-icon",
    r"\bfollow-icon",
    r"\bhidden",
    r"\bdisplay-none",
    r"\bvisibility-hidden",
)

# Case-insensitive.  A short fragment matching one of these is worth keeping.
VALUE_PATTERNS = (
    r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b",
    r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b",
    r"\$\d+",
    r"\d+\s*USD",
    r"\d+\s*EUR",
    r"price",
    r"contact",
    r"about",
    r"service",
    r"product",
    r"feature",
    r"category",
    r"location",
    r"hour",
)

ZONE_SELECTORS: Dict[ZoneKind, Tuple[str, ...]] = {
    ZoneKind.NAVIGATION: ("header", "nav", '[role="navigation"]'),
    ZoneKind.MAIN: (
        "main",
        "article",
        '[role="main"]',
        ".main-content",
        ".content",
        "#content",
        ".post-content",
        ".entry-content",
        ".product-content",
        ".products",
        ".product-list",
    ),
    ZoneKind.SIDEBAR: ("aside", '[role="complementary"]', ".sidebar", ".side-content"),
    ZoneKind.FOOTER: ("footer", '[role="contentinfo"]'),
}

# Order zones are discovered in; main only takes the first match per selector.
SCAN_ORDER = (ZoneKind.NAVIGATION, ZoneKind.MAIN, ZoneKind.SIDEBAR, ZoneKind.FOOTER)
FIRST_MATCH_ONLY = frozenset({ZoneKind.MAIN})

NOISE_TEXT_OVERRIDE = 50
VALUE_MIN_CHARS = 10
VALUE_LONG_CHARS = 50
UNTITLED = "Untitled"

_NOISE_RES = tuple(re.compile(p) for p in NOISE_PATTERNS)
_VALUE_RES = tuple(re.compile(p, re.IGNORECASE) for p in VALUE_PATTERNS)

_BLOCK_TAGS = frozenset(
    """address article aside blockquote br dd details div dl dt fieldset
    figcaption figure footer form h1 h2 h3 h4 h5 h6 header hr li main nav ol
    p pre section summary table tbody td tfoot th thead tr ul""".split()
)


# ---------------------------------------------------------------------------
# Shared heuristics
# ---------------------------------------------------------------------------

def is_noise_marker(class_name: str, element_id: str) -> bool:
    """Return ``True`` if the class or id looks like ads/tracking/popups."""
    class_name = class_name.lower()
    element_id = element_id.lower()
    return any(p.search(class_name) or p.search(element_id) for p in _NOISE_RES)


def has_valuable_content(text: str) -> bool:
    """Decide whether a candidate zone is worth keeping.

    Long text always is; 10-50 character fragments survive only when they
    look like a phone number, email, price or a business keyword.
    """
    text = text.strip()
    if len(text) < VALUE_MIN_CHARS:
        return False
    if len(text) > VALUE_LONG_CHARS:
        return True
    return any(p.search(text) for p in _VALUE_RES)


def clean_text(raw: str) -> str:
    """Normalise whitespace: one space per run, at most one blank line."""
    text = re.sub(r"[\t ]+", " ", raw.replace("\r\n", "\n").replace("\r", "\n"))
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def assemble_zones(zones: Sequence[ContentZone]) -> str:
    """Concatenate zones by ascending priority with section markers."""
    parts: List[str] = []
    for zone in sorted(zones, key=lambda z: z.priority):
        parts.append(f"\n\n{zone.kind.marker}\n{zone.text.strip()}")
    return "".join(parts)


def pick_title(candidates: Iterable[Optional[str]]) -> str:
    """Return the first non-blank candidate, stripped, or ``"Untitled"``."""
    for candidate in candidates:
        if candidate and candidate.strip():
            return " ".join(candidate.split())
    return UNTITLED


def truncate(text: str, max_chars: int) -> str:
    if max_chars and len(text) > max_chars:
        return text[:max_chars] + "..."
    return text


def build_page(
    url: str,
    title_candidates: Iterable[Optional[str]],
    description: Optional[str],
    candidates: Iterable[ContentZone],
    body_text: str,
    max_text_chars: int = 0,
) -> PageContent:
    """Filter candidate zones, fall back to the body, assemble and clean.

    Args:
        url: Page URL, copied into the result.
        title_candidates: In preference order (title, og, twitter, h1, h2).
        description: Meta description, may be empty.
        candidates: Raw zones in discovery order.
        body_text: Whole-body text, used only when no zone survives.
        max_text_chars: Truncate the assembled text beyond this (0 = no cap).
    """
    zones = [z for z in candidates if has_valuable_content(z.text)]
    if not zones and body_text.strip():
        zones = [ContentZone(kind=ZoneKind.BODY, text=body_text)]

    text = truncate(clean_text(assemble_zones(zones)), max_text_chars)
    return PageContent(
        url=url,
        title=pick_title(title_candidates),
        description=" ".join((description or "").split()),
        zones=zones,
        text=text,
    )


# ---------------------------------------------------------------------------
# Static (BeautifulSoup) implementation
# ---------------------------------------------------------------------------

def element_text(element: Tag) -> str:
    """Approximate ``innerText``: text nodes, with newlines at block edges."""
    parts: List[str] = []
    for node in element.descendants:
        if isinstance(node, Tag):
            if node.name in _BLOCK_TAGS:
                parts.append("\n")
        elif type(node) is NavigableString:
            parts.append(str(node))
    return "".join(parts)


def _meta_content(soup: BeautifulSoup, **attrs: str) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return None
    content = tag.get("content")
    return content if isinstance(content, str) else None


def _first_text(soup: BeautifulSoup, name: str) -> Optional[str]:
    tag = soup.find(name)
    return element_text(tag) if tag is not None else None


def title_candidates(soup: BeautifulSoup) -> List[Optional[str]]:
    title_tag = soup.find("title")
    return [
        title_tag.get_text() if title_tag is not None else None,
        _meta_content(soup, property="og:title"),
        _meta_content(soup, name="twitter:title"),
        _first_text(soup, "h1"),
        _first_text(soup, "h2"),
    ]


def extract_description(soup: BeautifulSoup) -> str:
    for attrs in ({"name": "description"}, {"property": "og:description"}, {"name": "twitter:description"}):
        content = _meta_content(soup, **attrs)
        if content and content.strip():
            return content.strip()
    return ""


def _attr_text(tag: Tag, name: str) -> str:
    value = tag.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return value or ""


def remove_noise(soup: BeautifulSoup) -> None:
    """Strip non-content elements in place (static rules only)."""
    for selector in REMOVE_SELECTORS:
        for tag in soup.select(selector):
            tag.decompose()

    for tag in soup.find_all(True):
        if tag.decomposed:
            continue
        if not is_noise_marker(_attr_text(tag, "class"), _attr_text(tag, "id")):
            continue
        if len(tag.get_text().strip()) > NOISE_TEXT_OVERRIDE:
            continue
        tag.decompose()


def _inside(tag: Tag, captured: List[Tag]) -> bool:
    if any(tag is c for c in captured):
        return True
    return any(any(parent is c for c in captured) for parent in tag.parents)


def candidate_zones(soup: BeautifulSoup) -> List[ContentZone]:
    """Find landmark zones in scan order, each element's text captured once.

    An element inside a captured zone is skipped.  An element that contains
    captured zones absorbs them: their earlier entries are dropped, since its
    own text already covers theirs.
    """
    captured: List[Tag] = []
    zones: List[ContentZone] = []
    for kind in SCAN_ORDER:
        for selector in ZONE_SELECTORS[kind]:
            matches = soup.select(selector)
            if kind in FIRST_MATCH_ONLY:
                matches = matches[:1]
            for tag in matches:
                if _inside(tag, captured):
                    continue
                text = element_text(tag)
                if not has_valuable_content(text):
                    continue
                for i in reversed(range(len(captured))):
                    if _inside(captured[i], [tag]):
                        del captured[i]
                        del zones[i]
                captured.append(tag)
                zones.append(ContentZone(kind=kind, text=text))
    return zones


def extract_zones(soup: BeautifulSoup) -> Tuple[str, List[ContentZone]]:
    """Return ``(title, zones)`` for *soup*, leaving *soup* untouched."""
    page = extract_page(soup, url="")
    return page.title, page.zones


def extract_page(soup: BeautifulSoup, url: str, max_text_chars: int = 0) -> PageContent:
    """Run the full static extraction over a parsed document.

    Noise removal works on a copy, so the same tree can be extracted again
    with the same result.  Title and description are read first because
    ``<meta>`` tags are removed as noise.
    """
    soup = copy.copy(soup)
    titles = title_candidates(soup)
    description = extract_description(soup)

    remove_noise(soup)
    zones = candidate_zones(soup)
    body = soup.body if soup.body is not None else soup
    return build_page(
        url=url,
        title_candidates=titles,
        description=description,
        candidates=zones,
        body_text=element_text(body),
        max_text_chars=max_text_chars,
    )


def parse_html(html: Union[str, bytes]) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")
