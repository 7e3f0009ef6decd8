"""CRUD and ordering operations for the ``items`` table.

Each row belongs to exactly one collection (see
:data:`~sitecms.db.models.COLLECTIONS`).  Display order is the explicit
``position`` column; it only changes through :func:`reorder_items`,
never as a side effect of an update.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from typing import TYPE_CHECKING, Any, Iterable, Optional

from sitecms.db.models import (
    COLLECTIONS,
    ContentItem,
    RosterEntry,
    next_stamp,
    parse_date,
    parse_stamp,
)
from sitecms.errors import NotFoundError, UnknownCollectionError, ValidationError

if TYPE_CHECKING:
    from sitecms.storage import FileStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_item(row: sqlite3.Row) -> ContentItem:
    active = row["active"]
    return ContentItem(
        id=row["id"],
        collection=row["collection"],
        title=row["title"],
        content=row["content"],
        position=row["position"],
        created_at=parse_stamp(row["created_at"]),  # type: ignore[arg-type]
        last_updated=parse_stamp(row["updated_at"]),  # type: ignore[arg-type]
        editable_date=parse_date(row["editable_date"]),
        filename=row["filename"],
        active=None if active is None else bool(active),
        roster=[RosterEntry.from_dict(r) for r in json.loads(row["roster"] or "[]")],
    )


def check_collection(collection: str) -> str:
    """Return *collection* unchanged, or raise if it is not recognised."""
    if collection not in COLLECTIONS:
        raise UnknownCollectionError(
            f"Unknown collection {collection!r}; expected one of {', '.join(COLLECTIONS)}"
        )
    return collection


def _require_text(field_name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def _clean_date(value: Any) -> Optional[str]:
    try:
        parsed = parse_date(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"editable_date is not a valid date: {value!r}") from exc
    return parsed.isoformat() if parsed else None


def _clean_active(value: Any) -> int:
    if not isinstance(value, bool):
        raise ValidationError("active must be true or false")
    return int(value)


def insert_item_row(conn: sqlite3.Connection, item: ContentItem) -> None:
    """Write a fully-formed :class:`ContentItem` as a new row (no validation)."""
    conn.execute(
        """
        INSERT INTO items (id, collection, title, content, editable_date, filename,
                           active, roster, position, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            item.id,
            item.collection,
            item.title,
            item.content,
            item.editable_date.isoformat() if item.editable_date else None,
            item.filename,
            None if item.active is None else int(item.active),
            item.roster_json(),
            item.position,
            item.created_at.isoformat(timespec="microseconds"),
            item.last_updated.isoformat(timespec="microseconds"),
        ),
    )


def _next_position(conn: sqlite3.Connection, collection: str) -> int:
    row = conn.execute(
        "SELECT COALESCE(MAX(position), -1) + 1 FROM items WHERE collection = ?",
        (collection,),
    ).fetchone()
    return row[0]


def _items_table_exists(conn: sqlite3.Connection) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'items'"
    ).fetchone()
    return row is not None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def list_items(conn: sqlite3.Connection, collection: str) -> list[ContentItem]:
    """Return every item in *collection* in display order.

    An uninitialised store has no items yet, so this returns an empty list
    rather than failing when the ``items`` table does not exist.
    """
    check_collection(collection)
    if not _items_table_exists(conn):
        return []
    rows = conn.execute(
        "SELECT * FROM items WHERE collection = ? ORDER BY position, created_at",
        (collection,),
    ).fetchall()
    return [_row_to_item(r) for r in rows]


def get_item(
    conn: sqlite3.Connection, collection: str, item_id: str
) -> Optional[ContentItem]:
    """Fetch a single item by id.  Returns ``None`` if not found."""
    check_collection(collection)
    row = conn.execute(
        "SELECT * FROM items WHERE id = ? AND collection = ?",
        (item_id, collection),
    ).fetchone()
    return _row_to_item(row) if row else None


def count_items(conn: sqlite3.Connection, collection: Optional[str] = None) -> int:
    """Count items in one collection, or across all of them."""
    if collection is None:
        return conn.execute("SELECT COUNT(*) FROM items").fetchone()[0]
    check_collection(collection)
    return conn.execute(
        "SELECT COUNT(*) FROM items WHERE collection = ?", (collection,)
    ).fetchone()[0]


def add_item(
    conn: sqlite3.Connection,
    collection: str,
    *,
    title: Any,
    content: Any,
    editable_date: Any = None,
    filename: Optional[str] = None,
    active: Optional[bool] = None,
) -> ContentItem:
    """Append a new item to the end of *collection* and return it.

    Args:
        conn: Open DB connection.
        collection: One of ``news``, ``faq``, ``forms``, ``classes``.
        title: Display title, must not be blank.
        content: Rich text body, must not be blank.
        editable_date: Optional date shown next to the item.
        filename: Stored attachment name.  Required for ``forms``, rejected
            everywhere else.
        active: Whether a class is open for signup.  Only valid for
            ``classes`` (defaults to ``True`` there).

    Raises:
        UnknownCollectionError: If *collection* is not recognised.
        ValidationError: If a required field is blank or a field does not
            apply to *collection*.
    """
    check_collection(collection)
    clean_title = _require_text("title", title)
    clean_content = _require_text("content", content)
    clean_date = _clean_date(editable_date)

    if collection == "forms":
        filename = _require_text("filename", filename)
    elif filename is not None:
        raise ValidationError(f"filename is only valid for forms, not {collection!r}")

    if collection == "classes":
        active = True if active is None else bool(_clean_active(active))
    elif active is not None:
        raise ValidationError(f"active is only valid for classes, not {collection!r}")

    now = next_stamp()
    item = ContentItem(
        id=str(uuid.uuid4()),
        collection=collection,
        title=clean_title,
        content=clean_content,
        position=0,
        created_at=now,
        last_updated=now,
        editable_date=parse_date(clean_date),
        filename=filename,
        active=active,
    )

    with conn:
        item.position = _next_position(conn, collection)
        insert_item_row(conn, item)

    logger.info("Added %s item %s (%r)", collection, item.id, item.title)
    return item


def update_item(
    conn: sqlite3.Connection, collection: str, item_id: str, **fields: Any
) -> ContentItem:
    """Replace one or more fields on an item.

    Allowed keyword arguments: ``title``, ``content``, ``editable_date``, plus
    ``active`` for classes.  A form's ``filename`` cannot be changed.
    ``last_updated`` is always refreshed and is guaranteed to move forward.

    Raises:
        NotFoundError: If *item_id* is not in *collection*.
        ValidationError: On an unknown field, a blank required field, or an
            empty update.
    """
    existing = get_item(conn, collection, item_id)
    if existing is None:
        raise NotFoundError(f"No {collection} item with id {item_id!r}")

    allowed = {"title", "content", "editable_date"}
    if collection == "classes":
        allowed.add("active")

    updates: dict[str, Any] = {}
    for key, value in fields.items():
        if key not in allowed:
            raise ValidationError(f"Cannot update field {key!r} on {collection}")
        if key in ("title", "content"):
            updates[key] = _require_text(key, value)
        elif key == "editable_date":
            updates[key] = _clean_date(value)
        else:
            updates[key] = _clean_active(value)

    if not updates:
        raise ValidationError("No fields provided to update")

    updates["updated_at"] = next_stamp(existing.last_updated).isoformat(timespec="microseconds")
    set_clause = ", ".join(f"{col} = ?" for col in updates)
    values = list(updates.values()) + [item_id, collection]

    with conn:
        conn.execute(
            f"UPDATE items SET {set_clause} WHERE id = ? AND collection = ?",  # noqa: S608
            values,
        )

    logger.info("Updated %s item %s (%s)", collection, item_id, ", ".join(sorted(fields)))
    return get_item(conn, collection, item_id)  # type: ignore[return-value]


def delete_item(
    conn: sqlite3.Connection,
    collection: str,
    item_id: str,
    file_store: Optional[FileStore] = None,
) -> ContentItem:
    """Remove an item and return the deleted record.

    For forms items with an attachment, *file_store* is asked to delete the
    file exactly once.  A missing file or a storage failure is logged and
    never turns into an error: the row is authoritative.

    Raises:
        NotFoundError: If *item_id* is not in *collection*.
    """
    item = get_item(conn, collection, item_id)
    if item is None:
        raise NotFoundError(f"No {collection} item with id {item_id!r}")

    with conn:
        conn.execute(
            "DELETE FROM items WHERE id = ? AND collection = ?", (item_id, collection)
        )
    logger.info("Deleted %s item %s (%r)", collection, item_id, item.title)

    if collection == "forms" and item.filename:
        if file_store is None:
            logger.warning("No file store configured; leaving %s on disk", item.filename)
        else:
            try:
                if not file_store.delete(item.filename):
                    logger.info("Attachment %s was already gone", item.filename)
            except Exception:
                logger.warning(
                    "Could not delete attachment %s of form %s",
                    item.filename,
                    item_id,
                    exc_info=True,
                )
    return item


def reorder_items(
    conn: sqlite3.Connection, collection: str, ordered_ids: Iterable[str]
) -> list[ContentItem]:
    """Persist a new display order for *collection*.

    *ordered_ids* must be a permutation of the ids currently in the
    collection.  Anything else is rejected and the stored order is left
    untouched.  Item fields (including ``last_updated``) are not modified.

    Raises:
        ValidationError: If the ids are not exactly the current id set.
    """
    check_collection(collection)
    ids = list(ordered_ids)
    current = {
        r["id"]
        for r in conn.execute(
            "SELECT id FROM items WHERE collection = ?", (collection,)
        ).fetchall()
    }

    if len(set(ids)) != len(ids):
        raise ValidationError("Reorder contains duplicate ids")
    unknown = set(ids) - current
    missing = current - set(ids)
    if unknown or missing:
        parts = []
        if unknown:
            parts.append(f"unknown ids: {', '.join(sorted(unknown))}")
        if missing:
            parts.append(f"missing ids: {', '.join(sorted(missing))}")
        raise ValidationError(
            f"Reorder must list every {collection} item exactly once ({'; '.join(parts)})"
        )

    with conn:
        conn.executemany(
            "UPDATE items SET position = ? WHERE id = ? AND collection = ?",
            [(pos, item_id, collection) for pos, item_id in enumerate(ids)],
        )

    logger.info("Reordered %s (%d items)", collection, len(ids))
    return list_items(conn, collection)
