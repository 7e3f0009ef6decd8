"""Centralised settings for the site content store.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _split_csv(raw: str) -> list[str]:
    return [part.strip().lower().lstrip(".") for part in raw.split(",") if part.strip()]


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("SITECMS_WORKSPACE", Path.home() / ".sitecms_data")
        )
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite database file."""
        return self.workspace_dir / "content.db"

    @property
    def upload_dir(self) -> Path:
        """Directory holding files attached to forms items."""
        return self.workspace_dir / "uploads"

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return Path(__file__).resolve().parent / "db" / "schema.sql"

    # Flat-file store from the first site revisions, imported once on first start.
    legacy_data_file: Path | None = field(
        default_factory=lambda: (
            Path(os.environ["SITECMS_LEGACY_DATA"])
            if os.environ.get("SITECMS_LEGACY_DATA")
            else None
        )
    )

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------
    allowed_upload_extensions: list[str] = field(
        default_factory=lambda: _split_csv(
            os.environ.get(
                "SITECMS_UPLOAD_EXTENSIONS",
                "pdf,doc,docx,xls,xlsx,csv,txt,png,jpg,jpeg",
            )
        )
    )
    max_upload_bytes: int = field(
        default_factory=lambda: int(
            os.environ.get("SITECMS_MAX_UPLOAD_BYTES", str(10 * 1024 * 1024))
        )
    )

    # ------------------------------------------------------------------
    # Dashboard access
    # ------------------------------------------------------------------
    admin_token: str = field(
        default_factory=lambda: os.environ.get("SITECMS_ADMIN_TOKEN", "")
    )

    # ------------------------------------------------------------------
    # HTTP / logging
    # ------------------------------------------------------------------
    cors_origins: list[str] = field(
        default_factory=lambda: [
            o.strip()
            for o in os.environ.get("SITECMS_CORS_ORIGINS", "*").split(",")
            if o.strip()
        ]
    )
    log_level: str = field(
        default_factory=lambda: os.environ.get("SITECMS_LOG_LEVEL", "INFO")
    )

    def ensure_workspace(self) -> None:
        """Create the workspace and upload directories if they do not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)
        self.upload_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton, import this everywhere:
#   from sitecms.config import settings
settings = Settings()
