"""Process-wide logging setup.

Library modules only ever do ``logger = logging.getLogger(__name__)``; the
entry points (CLI, API factory) call :func:`configure_logging` once.
"""

from __future__ import annotations

import logging
import sys

_TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s | %(message)s"
_KV_FORMAT = "ts=%(asctime)s level=%(levelname)s logger=%(name)s msg=%(message)r"


class PlaywrightPipeFilter(logging.Filter):
    """Drop Playwright's 'pipe closed by peer' noise after a browser exits."""

    def filter(self, record: logging.LogRecord) -> bool:
        return "pipe closed by peer" not in record.getMessage()


def configure_logging(log_level: str = "INFO", log_format: str = "text") -> logging.Logger:
    """Install a single stderr handler on the ``sitetext`` logger.

    Args:
        log_level: Level name, e.g. ``"DEBUG"``.
        log_format: ``"text"`` for human-readable lines, ``"kv"`` for
            ``key=value`` lines that log shippers can parse.

    Returns:
        The configured ``sitetext`` logger.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(PlaywrightPipeFilter())
    handler.setFormatter(logging.Formatter(_KV_FORMAT if log_format == "kv" else _TEXT_FORMAT))

    lg = logging.getLogger("sitetext")
    lg.handlers.clear()
    lg.addHandler(handler)
    lg.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    lg.propagate = False

    # Third-party clients log every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("playwright").setLevel(logging.ERROR)
    return lg
