"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from sitetext.api import app

    uvicorn sitetext.api:app --reload
"""

from sitetext.api.app import app

__all__ = ["app"]
