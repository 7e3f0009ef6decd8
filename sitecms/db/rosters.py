"""Signup rosters embedded in class items.

A roster is stored as a JSON array in the ``roster`` column of a ``classes``
row, oldest signup first.  Entries have no identity of their own and are
addressed by position.

Entry dict shape::

    {
        "first_name": "...",
        "last_name": "...",
        "email": "...",
        "signup_date": "2024-01-01T12:00:00+00:00"
    }
"""

from __future__ import annotations

import json
import logging
import sqlite3

from sitecms.db.items import get_item
from sitecms.db.models import ContentItem, RosterEntry, utcnow
from sitecms.errors import IndexOutOfRangeError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _require_class(conn: sqlite3.Connection, class_id: str) -> ContentItem:
    item = get_item(conn, "classes", class_id)
    if item is None:
        raise NotFoundError(f"No class with id {class_id!r}")
    return item


def _write_roster(
    conn: sqlite3.Connection, class_id: str, roster: list[RosterEntry]
) -> None:
    with conn:
        conn.execute(
            "UPDATE items SET roster = ? WHERE id = ? AND collection = 'classes'",
            (json.dumps([entry.to_dict() for entry in roster]), class_id),
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def get_roster(conn: sqlite3.Connection, class_id: str) -> list[RosterEntry]:
    """Return the roster of *class_id* in signup order."""
    return _require_class(conn, class_id).roster


def sign_up(
    conn: sqlite3.Connection,
    class_id: str,
    *,
    first_name: str,
    last_name: str,
    email: str,
) -> RosterEntry:
    """Append a signup to a class roster, stamped with the current time.

    Repeat signups by the same person are accepted.

    Raises:
        NotFoundError: If *class_id* is not a class.
        ValidationError: If any of the names or the email is blank.
    """
    values = {"first_name": first_name, "last_name": last_name, "email": email}
    for key, value in values.items():
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{key} is required")

    item = _require_class(conn, class_id)
    entry = RosterEntry(
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        email=email.strip(),
        signup_date=utcnow(),
    )
    _write_roster(conn, class_id, item.roster + [entry])
    logger.info("Signup for class %s (%r), roster size %d", class_id, item.title, len(item.roster) + 1)
    return entry


def delete_roster_entry(
    conn: sqlite3.Connection, class_id: str, index: int
) -> RosterEntry:
    """Remove and return the roster entry at *index*.

    Raises:
        NotFoundError: If *class_id* is not a class.
        IndexOutOfRangeError: If *index* is negative or past the end.
    """
    item = _require_class(conn, class_id)
    if index < 0 or index >= len(item.roster):
        raise IndexOutOfRangeError(
            f"Roster index {index} out of range for class {class_id!r} "
            f"({len(item.roster)} entries)"
        )
    roster = list(item.roster)
    removed = roster.pop(index)
    _write_roster(conn, class_id, roster)
    logger.info("Removed roster entry %d from class %s", index, class_id)
    return removed
