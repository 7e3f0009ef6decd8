"""Attachment storage for forms items.

Uploaded files are stored under a generated name (UTC timestamp plus a short
random suffix, keeping the original extension) so the stored name never
depends on the item's display title.  The content store only ever talks to
the :class:`FileStore` protocol; :class:`LocalFileStore` is the on-disk
implementation used by the app.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Protocol

from sitecms.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class FileStore(Protocol):
    def save(self, original_name: str, data: bytes) -> str: ...

    def path_for(self, filename: str) -> Path: ...

    def exists(self, filename: str) -> bool: ...

    def delete(self, filename: str) -> bool: ...


class LocalFileStore:
    """Store attachments as plain files in one directory.

    Args:
        root: Directory holding the files (created on first save).
        allowed_extensions: Lower-case extensions without the dot.  ``None``
            accepts any extension.
        max_bytes: Upper bound for a single upload, ``None`` for no limit.
    """

    def __init__(
        self,
        root: Path,
        allowed_extensions: Optional[Iterable[str]] = None,
        max_bytes: Optional[int] = None,
    ) -> None:
        self.root = Path(root)
        self.allowed_extensions = (
            {ext.lower().lstrip(".") for ext in allowed_extensions}
            if allowed_extensions is not None
            else None
        )
        self.max_bytes = max_bytes

    def _generate_name(self, extension: str) -> str:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f")
        name = f"{stamp}-{uuid.uuid4().hex[:8]}"
        return f"{name}.{extension}" if extension else name

    def path_for(self, filename: str) -> Path:
        """Resolve *filename* inside the root, refusing anything that escapes it."""
        root = self.root.resolve()
        path = (root / filename).resolve()
        if path.parent != root or not filename:
            raise NotFoundError(f"Invalid attachment name {filename!r}")
        return path

    def save(self, original_name: str, data: bytes) -> str:
        """Write *data* under a generated name and return that name.

        Raises:
            ValidationError: For an empty upload, a disallowed extension or
                an oversized file.
        """
        if not data:
            raise ValidationError("Uploaded file is empty")
        if self.max_bytes is not None and len(data) > self.max_bytes:
            raise ValidationError(
                f"Uploaded file is larger than {self.max_bytes} bytes"
            )
        extension = Path(original_name or "").suffix.lower().lstrip(".")
        if self.allowed_extensions is not None and extension not in self.allowed_extensions:
            raise ValidationError(
                f"File type {extension or '(none)'!r} is not allowed; "
                f"use one of {', '.join(sorted(self.allowed_extensions))}"
            )

        self.root.mkdir(parents=True, exist_ok=True)
        filename = self._generate_name(extension)
        self.path_for(filename).write_bytes(data)
        logger.info("Stored upload %r as %s (%d bytes)", original_name, filename, len(data))
        return filename

    def exists(self, filename: str) -> bool:
        try:
            return self.path_for(filename).is_file()
        except NotFoundError:
            return False

    def delete(self, filename: str) -> bool:
        """Remove a stored file.  Returns ``False`` when it was already gone."""
        path = self.path_for(filename)
        if not path.exists():
            return False
        path.unlink()
        logger.info("Deleted attachment %s", filename)
        return True
