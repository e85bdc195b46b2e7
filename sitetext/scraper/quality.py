"""Content quality gate: is extracted text worth keeping without escalating?"""

from __future__ import annotations

from typing import Optional

MIN_LENGTH = 100
MIN_VARIETY = 0.15
ERROR_PAGE_MAX_LENGTH = 200

ERROR_PHRASES = (
    "page not found",
    "error 404",
    "access denied",
    "forbidden",
)


def lexical_variety(text: str) -> float:
    """Distinct lower-cased tokens divided by total tokens (0.0 for no tokens)."""
    tokens = text.split()
    if not tokens:
        return 0.0
    return len({t.lower() for t in tokens}) / len(tokens)


def looks_like_error_page(text: str) -> bool:
    """Short text carrying a generic error phrase, e.g. a bare 404 template."""
    if len(text) >= ERROR_PAGE_MAX_LENGTH:
        return False
    lowered = text.lower()
    return any(phrase in lowered for phrase in ERROR_PHRASES)


def is_meaningful(
    text: Optional[str],
    min_length: int = MIN_LENGTH,
    min_variety: float = MIN_VARIETY,
) -> bool:
    """Return ``True`` when *text* is long, varied and not an error page.

    Catches loading spinners and repeated boilerplate (low variety) as well as
    soft-404 pages that return 200 with a one-line error.
    """
    if not text or len(text) < min_length:
        return False
    if lexical_variety(text) < min_variety:
        return False
    return not looks_like_error_page(text)
