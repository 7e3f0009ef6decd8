"""Database initialisation, migration and first-start helpers.

``init_db(conn)`` is idempotent and safe to call on an existing database.
``migrate(conn)`` runs incremental schema changes tracked in a version table.
``initialise_store(conn)`` is what the app and CLI call at startup.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from sitecms.config import settings
from sitecms.db.alerts import write_alert
from sitecms.db.items import add_item
from sitecms.db.legacy import import_legacy_file
from sitecms.db.models import AlertConfig

if TYPE_CHECKING:
    from sitecms.storage import FileStore

logger = logging.getLogger(__name__)

# Placeholder content created on the very first start.  Forms stay empty
# because a form item needs an uploaded file.
DEFAULT_ITEMS: dict[str, dict[str, str]] = {
    "news": {"title": "Default News Title", "content": "Default news content"},
    "faq": {"title": "Default FAQ Title", "content": "Default FAQ content"},
    "classes": {"title": "Default Class Title", "content": "Default class content"},
}

# Incremental schema changes as ``(version, sql)``; applied in order.
MIGRATIONS: list[tuple[int, str]] = [
    # (1, "ALTER TABLE items ADD COLUMN foo TEXT;"),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _read_schema() -> str:
    return settings.schema_path.read_text(encoding="utf-8")


def _table_exists(conn: sqlite3.Connection, name: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
    ).fetchone()
    return row is not None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def init_db(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes.

    This function is **idempotent**: every DDL statement uses ``IF NOT EXISTS``
    so calling it multiple times on the same database is safe.

    Args:
        conn: An open, configured SQLite connection.
    """
    # executescript() issues an implicit COMMIT first, fine for DDL-only scripts.
    conn.executescript(_read_schema())
    _ensure_version_table(conn)


def _ensure_version_table(conn: sqlite3.Connection) -> None:
    """Create the internal schema-version tracking table if absent."""
    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_version (
                version  INTEGER PRIMARY KEY,
                applied_at TEXT DEFAULT (datetime('now'))
            )
            """
        )


def current_version(conn: sqlite3.Connection) -> int:
    """Return the highest applied migration version (0 if none applied)."""
    row = conn.execute(
        "SELECT COALESCE(MAX(version), 0) FROM schema_version"
    ).fetchone()
    return row[0] if row else 0


def migrate(conn: sqlite3.Connection) -> None:
    """Run any pending incremental migrations from :data:`MIGRATIONS`.

    Each applied version is recorded in ``schema_version``.
    """
    applied = current_version(conn)
    for version, sql in MIGRATIONS:
        if version > applied:
            with conn:
                conn.execute(sql)
                conn.execute(
                    "INSERT INTO schema_version(version) VALUES (?)", (version,)
                )
            logger.info("Applied schema migration %d", version)


def seed_defaults(conn: sqlite3.Connection) -> None:
    """Create the placeholder items and the default (inactive) alert."""
    for collection, fields in DEFAULT_ITEMS.items():
        add_item(conn, collection, **fields)
    write_alert(conn, AlertConfig())
    logger.info("Seeded default content")


def initialise_store(
    conn: sqlite3.Connection,
    legacy_path: Optional[Path] = None,
    file_store: Optional[FileStore] = None,
) -> bool:
    """Bring the store up to date at process start.

    On the first-ever start (no ``items`` table yet) the store is filled
    either from the legacy flat file at *legacy_path*, when one exists, or
    with :func:`seed_defaults`.  Imported forms are checked against
    *file_store* when one is given.  Later starts only create missing tables and
    apply pending migrations.

    Returns:
        ``True`` when this call created the store.

    Raises:
        LegacyFormatError: If the legacy file is unreadable.  Startup must
            fail rather than drop persisted content.
    """
    first_start = not _table_exists(conn, "items")
    init_db(conn)
    migrate(conn)

    if first_start:
        if legacy_path is not None and Path(legacy_path).exists():
            logger.info("Importing legacy content from %s", legacy_path)
            import_legacy_file(conn, legacy_path, file_store=file_store)
            write_alert(conn, AlertConfig())
        else:
            seed_defaults(conn)
    return first_start
