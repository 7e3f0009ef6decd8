"""Read / upsert helpers for the singleton site alert."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import replace
from typing import Any

from sitecms.db.models import (
    ALERT_COLORS,
    ALERT_ORIENTATIONS,
    AlertConfig,
    next_stamp,
    parse_stamp,
)
from sitecms.errors import ValidationError

logger = logging.getLogger(__name__)

_TEXT_FIELDS = {"title", "content"}
_FLAG_FIELDS = {"active", "enable_title", "enable_content"}


def _row_to_alert(row: sqlite3.Row) -> AlertConfig:
    return AlertConfig(
        title=row["title"],
        content=row["content"],
        color=row["color"],
        orientation=row["orientation"],
        active=bool(row["active"]),
        enable_title=bool(row["enable_title"]),
        enable_content=bool(row["enable_content"]),
        last_updated=parse_stamp(row["updated_at"]),
    )


def get_alert(conn: sqlite3.Connection) -> AlertConfig:
    """Return the stored alert, or the defaults when none was saved yet."""
    row = conn.execute("SELECT * FROM alert WHERE id = 1").fetchone()
    return _row_to_alert(row) if row else AlertConfig()


def write_alert(conn: sqlite3.Connection, alert: AlertConfig) -> None:
    """Insert or replace the alert row as-is."""
    with conn:
        conn.execute(
            """
            INSERT INTO alert (id, title, content, color, orientation, active,
                               enable_title, enable_content, updated_at)
            VALUES (1, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                title = excluded.title,
                content = excluded.content,
                color = excluded.color,
                orientation = excluded.orientation,
                active = excluded.active,
                enable_title = excluded.enable_title,
                enable_content = excluded.enable_content,
                updated_at = excluded.updated_at
            """,
            (
                alert.title,
                alert.content,
                alert.color,
                alert.orientation,
                int(alert.active),
                int(alert.enable_title),
                int(alert.enable_content),
                (alert.last_updated or next_stamp()).isoformat(),
            ),
        )


def save_alert(conn: sqlite3.Connection, **fields: Any) -> AlertConfig:
    """Merge *fields* over the current alert and persist the result.

    An alert with neither its title nor its content enabled cannot be
    active; such a save is rejected rather than silently switched off.

    Raises:
        ValidationError: On an unknown field, a bad color / orientation, a
            non-boolean flag, or an active alert with nothing enabled.
    """
    current = get_alert(conn)
    changes: dict[str, Any] = {}
    for key, value in fields.items():
        if key in _TEXT_FIELDS:
            if not isinstance(value, str):
                raise ValidationError(f"{key} must be text")
            changes[key] = value.strip()
        elif key in _FLAG_FIELDS:
            if not isinstance(value, bool):
                raise ValidationError(f"{key} must be true or false")
            changes[key] = value
        elif key == "color":
            if value not in ALERT_COLORS:
                raise ValidationError(
                    f"color must be one of {', '.join(ALERT_COLORS)}"
                )
            changes[key] = value
        elif key == "orientation":
            if value not in ALERT_ORIENTATIONS:
                raise ValidationError(
                    f"orientation must be one of {', '.join(ALERT_ORIENTATIONS)}"
                )
            changes[key] = value
        else:
            raise ValidationError(f"Cannot update alert field {key!r}")

    updated = replace(current, **changes)
    if updated.active and not (updated.enable_title or updated.enable_content):
        raise ValidationError(
            "An active alert needs its title or its content enabled"
        )

    updated.last_updated = next_stamp(current.last_updated)
    write_alert(conn, updated)
    logger.info("Saved site alert (active=%s, color=%s)", updated.active, updated.color)
    return updated
