"""Site content CLI: entry-point for operating the store.

Usage:
    python cli/main.py --help

Command groups:
    db        → schema, legacy flat-file import / export
    content   → list and edit collections, class rosters
    alert     → site-wide banner
    serve     → run the HTTP API with uvicorn
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from sitecms.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import typer

from sitecms.config import settings
from sitecms.db import get_connection, init_db
from sitecms.db.legacy import (
    export_legacy,
    import_legacy_file,
    load_legacy_file,
    write_legacy_file,
)
from sitecms.db.migrations import current_version, migrate
from sitecms.errors import ContentStoreError
from sitecms.logs import configure_logging
from sitecms.storage import LocalFileStore

from cli.commands.content import alert_app, content_app

app = typer.Typer(
    name="sitecms",
    help="Site content store CLI.",
    no_args_is_help=True,
)
app.add_typer(content_app, name="content")
app.add_typer(alert_app, name="alert")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log store activity."),
) -> None:
    if verbose:
        configure_logging("INFO")


# ---------------------------------------------------------------------------
# DB commands
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Database operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Create tables if they do not exist and apply pending migrations."""
    conn = get_connection()
    init_db(conn)
    migrate(conn)
    version = current_version(conn)
    conn.close()
    typer.echo(f"[db init] Database ready at {settings.db_path} (schema v{version})")


@db_app.command("import-legacy")
def db_import_legacy(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Legacy data.json."),
    replace: bool = typer.Option(False, "--replace", help="Wipe existing items first."),
) -> None:
    """Import a legacy flat-file store, keeping its display order."""
    conn = get_connection()
    init_db(conn)
    try:
        counts = import_legacy_file(
            conn, path, replace=replace, file_store=LocalFileStore(settings.upload_dir)
        )
    except ContentStoreError as exc:
        typer.echo(f"[db import-legacy] ❌ {exc}")
        raise typer.Exit(1)
    finally:
        conn.close()
    summary = ", ".join(f"{name}={n}" for name, n in counts.items())
    typer.echo(f"[db import-legacy] Imported {summary}")


@db_app.command("export-legacy")
def db_export_legacy(
    path: Path = typer.Argument(..., dir_okay=False, help="Output JSON file."),
) -> None:
    """Write the store out in the legacy flat-file layout."""
    conn = get_connection()
    init_db(conn)
    try:
        data = export_legacy(conn)
    finally:
        conn.close()
    write_legacy_file(path, data)
    total = sum(len(records) for records in data.values())
    typer.echo(f"[db export-legacy] Wrote {total} items to {path}")


@db_app.command("migrate-file")
def db_migrate_file(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Legacy data.json."),
) -> None:
    """Rewrite an untitled-era legacy file in the titled layout, in place."""
    try:
        data = load_legacy_file(path)
    except ContentStoreError as exc:
        typer.echo(f"[db migrate-file] ❌ {exc}")
        raise typer.Exit(1)
    write_legacy_file(path, data)
    typer.echo(f"[db migrate-file] {path} is up to date")


# ---------------------------------------------------------------------------
# HTTP server
# ---------------------------------------------------------------------------
@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8000, help="Bind port."),
    reload: bool = typer.Option(False, help="Reload on code changes."),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("sitecms.api.app:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
