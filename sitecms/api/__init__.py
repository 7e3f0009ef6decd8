"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from sitecms.api import app

    uvicorn sitecms.api:app --reload
"""

from sitecms.api.app import app

__all__ = ["app"]
