"""Legacy flat-file store: migration, import and export.

The first revisions of the site kept everything in one JSON document::

    {
        "news":    [{"title": ..., "content": ..., "editableDate": "2023-01-01",
                     "lastUpdated": "2023-01-01T00:00:00.000Z"}, ...],
        "faq":     [...],
        "forms":   [...],
        "classes": [...]
    }

The oldest files predate titles entirely.  Items are identified only by their
position in each list, so importing assigns fresh UUIDs and keeps file order
as display order.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import date, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from sitecms.db.items import count_items, insert_item_row, list_items
from sitecms.db.models import (
    COLLECTIONS,
    ContentItem,
    RosterEntry,
    next_stamp,
    parse_date,
    parse_stamp,
    utcnow,
)
from sitecms.errors import LegacyFormatError, ValidationError

if TYPE_CHECKING:
    from sitecms.storage import FileStore

logger = logging.getLogger(__name__)

UNTITLED = "Untitled"
DEFAULT_CONTENT = "Default content"


# ---------------------------------------------------------------------------
# Pure migration
# ---------------------------------------------------------------------------

def _iso_now() -> str:
    return utcnow().isoformat().replace("+00:00", "Z")


def migrate_legacy_records(data: dict[str, Any]) -> dict[str, Any]:
    """Bring a legacy document up to the titled record shape.

    Records without a ``title`` are rewritten; records that already have one
    are passed through untouched, so running this on migrated data is a
    no-op.  Missing collections are added as empty lists.

    Raises:
        LegacyFormatError: If a collection is not a list of objects.
    """
    migrated: dict[str, Any] = dict(data)
    for name in COLLECTIONS:
        migrated.setdefault(name, [])

    for name, records in data.items():
        if name not in COLLECTIONS:
            continue
        if not isinstance(records, list):
            raise LegacyFormatError(f"Collection {name!r} is not a list")
        out: list[dict[str, Any]] = []
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                raise LegacyFormatError(f"{name}[{index}] is not an object")
            if record.get("title"):
                out.append(record)
                continue
            out.append(
                {
                    "title": UNTITLED,
                    "content": record.get("content") or DEFAULT_CONTENT,
                    "editableDate": record.get("editableDate") or date.today().isoformat(),
                    "lastUpdated": record.get("lastUpdated") or _iso_now(),
                    "filename": record.get("filename") or "",
                }
            )
        migrated[name] = out
    return migrated


def load_legacy_file(path: Path | str) -> dict[str, Any]:
    """Read and migrate a legacy JSON store.

    Raises:
        LegacyFormatError: If the file is not valid JSON or not an object.
            Persisted data is never silently discarded.
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise LegacyFormatError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise LegacyFormatError(f"{path} must contain a JSON object")
    return migrate_legacy_records(raw)


def write_legacy_file(path: Path | str, data: dict[str, Any]) -> None:
    """Write *data* in the legacy layout (two-space indented JSON)."""
    Path(path).write_text(json.dumps(data, indent=2), encoding="utf-8")


# ---------------------------------------------------------------------------
# Import / export against the SQLite store
# ---------------------------------------------------------------------------

def _roster_entry(
    position: int, index: int, entry: Any, fallback: datetime
) -> RosterEntry:
    if not isinstance(entry, dict):
        raise LegacyFormatError(f"classes[{position}].roster[{index}] is not an object")
    try:
        signed_up = parse_stamp(entry.get("signupDate")) or fallback
    except ValueError:
        logger.warning(
            "Unreadable signup date %r in classes[%d].roster[%d]",
            entry.get("signupDate"), position, index,
        )
        signed_up = fallback
    return RosterEntry(
        first_name=str(entry.get("firstName") or ""),
        last_name=str(entry.get("lastName") or ""),
        email=str(entry.get("email") or ""),
        signup_date=signed_up,
    )


def _record_to_item(
    collection: str,
    position: int,
    record: dict[str, Any],
    file_store: Optional[FileStore] = None,
) -> ContentItem:
    try:
        editable = parse_date(record.get("editableDate"))
    except ValueError:
        logger.warning("Dropping unreadable date %r in %s[%d]", record.get("editableDate"), collection, position)
        editable = None
    try:
        stamp = parse_stamp(record.get("lastUpdated")) or next_stamp()
    except ValueError:
        stamp = next_stamp()

    filename = None
    if collection == "forms":
        filename = record.get("filename") or None
        if filename is None:
            logger.warning("Form %r has no attachment", record.get("title"))
        elif file_store is not None and not file_store.exists(filename):
            logger.warning(
                "Attachment %s of form %r is not in the upload store",
                filename, record.get("title"),
            )

    active = None
    roster: list[RosterEntry] = []
    if collection == "classes":
        active = bool(record.get("active", True))
        entries = record.get("roster") or []
        if not isinstance(entries, list):
            raise LegacyFormatError(f"classes[{position}].roster is not a list")
        roster = [
            _roster_entry(position, index, entry, stamp)
            for index, entry in enumerate(entries)
        ]

    return ContentItem(
        id=str(uuid.uuid4()),
        collection=collection,
        title=str(record.get("title") or UNTITLED).strip(),
        content=str(record.get("content") or ""),
        position=position,
        created_at=stamp,
        last_updated=stamp,
        editable_date=editable,
        filename=filename,
        active=active,
        roster=roster,
    )


def import_legacy_data(
    conn: sqlite3.Connection,
    data: dict[str, Any],
    *,
    replace: bool = False,
    file_store: Optional[FileStore] = None,
) -> dict[str, int]:
    """Insert every record of a legacy document, keeping list order.

    Args:
        conn: Open DB connection.
        data: Legacy document (migrated first if needed).
        replace: Wipe existing items before importing.
        file_store: When given, forms whose attachment is not in the store
            are logged.

    Returns:
        Number of imported items per collection.

    Raises:
        ValidationError: If the store already has items and *replace* is off.
        LegacyFormatError: If a record or roster entry is malformed.  Nothing
            is imported in that case.
    """
    if count_items(conn) and not replace:
        raise ValidationError(
            "The content store already has items; import with replace to overwrite"
        )

    migrated = migrate_legacy_records(data)
    ignored = sorted(set(migrated) - set(COLLECTIONS))
    if ignored:
        logger.warning("Ignoring unknown legacy sections: %s", ", ".join(ignored))

    counts: dict[str, int] = {}
    with conn:
        if replace:
            conn.execute("DELETE FROM items")
        for name in COLLECTIONS:
            records = migrated[name]
            for position, record in enumerate(records):
                insert_item_row(conn, _record_to_item(name, position, record, file_store))
            counts[name] = len(records)

    logger.info(
        "Imported legacy content: %s",
        ", ".join(f"{name}={n}" for name, n in counts.items()),
    )
    return counts


def import_legacy_file(
    conn: sqlite3.Connection,
    path: Path | str,
    *,
    replace: bool = False,
    file_store: Optional[FileStore] = None,
) -> dict[str, int]:
    """Load a legacy JSON file and import it.  See :func:`import_legacy_data`."""
    return import_legacy_data(
        conn, load_legacy_file(path), replace=replace, file_store=file_store
    )


def export_legacy(conn: sqlite3.Connection) -> dict[str, Any]:
    """Dump the store in the legacy JSON layout, collections in display order."""
    out: dict[str, Any] = {}
    for name in COLLECTIONS:
        records = []
        for item in list_items(conn, name):
            record: dict[str, Any] = {
                "title": item.title,
                "content": item.content,
                "editableDate": item.editable_date.isoformat() if item.editable_date else "",
                "lastUpdated": item.last_updated.isoformat(),
            }
            if name == "forms":
                record["filename"] = item.filename or ""
            if name == "classes":
                record["active"] = bool(item.active)
                record["roster"] = [
                    {
                        "firstName": e.first_name,
                        "lastName": e.last_name,
                        "email": e.email,
                        "signupDate": e.signup_date.isoformat(),
                    }
                    for e in item.roster
                ]
            records.append(record)
        out[name] = records
    return out
