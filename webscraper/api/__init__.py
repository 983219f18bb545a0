"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from webscraper.api import app

    uvicorn webscraper.api:app --reload
"""

from webscraper.api.app import app

__all__ = ["app"]
