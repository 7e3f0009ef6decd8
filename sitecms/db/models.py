"""Dataclass models representing DB rows.

These are plain Python objects, not ORM models.  The DB layer serialises /
deserialises to and from these types.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

# Display order of the recognised collections.
COLLECTIONS: tuple[str, ...] = ("news", "faq", "forms", "classes")

ALERT_COLORS: tuple[str, ...] = ("danger", "warning", "success", "light")
ALERT_ORIENTATIONS: tuple[str, ...] = ("top", "bottom")


# ---------------------------------------------------------------------------
# Timestamp helpers
# ---------------------------------------------------------------------------

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def next_stamp(previous: Optional[datetime] = None) -> datetime:
    """Return *now*, nudged forward so it is strictly after *previous*."""
    now = utcnow()
    if previous is not None and now <= previous:
        now = previous + timedelta(microseconds=1)
    return now


def parse_stamp(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    stamp = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp


def parse_date(raw: Any) -> Optional[date]:
    """Accept a ``date``, an ISO ``YYYY-MM-DD`` string, or an ISO timestamp."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    return date.fromisoformat(str(raw)[:10])


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------

@dataclass
class RosterEntry:
    first_name: str
    last_name: str
    email: str
    signup_date: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "signup_date": self.signup_date.isoformat(),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> RosterEntry:
        return cls(
            first_name=raw["first_name"],
            last_name=raw["last_name"],
            email=raw["email"],
            signup_date=parse_stamp(raw.get("signup_date")) or utcnow(),
        )


@dataclass
class ContentItem:
    id: str
    collection: str
    title: str
    content: str
    position: int
    created_at: datetime
    last_updated: datetime
    editable_date: Optional[date] = None
    filename: Optional[str] = None
    active: Optional[bool] = None
    roster: list[RosterEntry] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Convenience helpers
    # ------------------------------------------------------------------
    def roster_json(self) -> str:
        """Serialise the roster to a JSON string for storage."""
        return json.dumps([entry.to_dict() for entry in self.roster])

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "collection": self.collection,
            "title": self.title,
            "content": self.content,
            "position": self.position,
            "editable_date": self.editable_date.isoformat() if self.editable_date else None,
            "created_at": self.created_at.isoformat(timespec="microseconds"),
            "last_updated": self.last_updated.isoformat(timespec="microseconds"),
        }
        if self.collection == "forms":
            data["filename"] = self.filename
        if self.collection == "classes":
            data["active"] = self.active
            data["roster_size"] = len(self.roster)
        return data


@dataclass
class AlertConfig:
    title: str = ""
    content: str = ""
    color: str = "warning"
    orientation: str = "top"
    active: bool = False
    enable_title: bool = True
    enable_content: bool = True
    last_updated: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["last_updated"] = self.last_updated.isoformat() if self.last_updated else None
        return data
