"""Database layer package.

Public re-exports so callers can write::

    from sitecms.db import get_connection, init_db, initialise_store
    from sitecms.db import items
"""

from sitecms.db.connection import get_connection
from sitecms.db.migrations import init_db, initialise_store
from sitecms.db import alerts, items, rosters

__all__ = ["get_connection", "init_db", "initialise_store", "alerts", "items", "rosters"]
