"""Content and alert commands for operating the store from a shell."""

import sqlite3
from typing import List, Optional

import typer

from sitecms.config import settings
from sitecms.db import get_connection, initialise_store
from sitecms.db.alerts import get_alert, save_alert
from sitecms.db.items import add_item, delete_item, list_items, reorder_items, update_item
from sitecms.db.rosters import delete_roster_entry, get_roster
from sitecms.errors import ContentStoreError
from sitecms.storage import LocalFileStore

content_app = typer.Typer(help="List and edit news, faq, forms and classes.")
alert_app = typer.Typer(help="Show or change the site-wide alert banner.")


def _open() -> sqlite3.Connection:
    conn = get_connection()
    initialise_store(conn, settings.legacy_data_file, LocalFileStore(settings.upload_dir))
    return conn


def _fail(exc: ContentStoreError) -> None:
    typer.echo(f"❌ Error: {exc}")
    raise typer.Exit(code=1)


@content_app.command("list")
def content_list(
    name: str = typer.Argument(..., help="Collection: news | faq | forms | classes."),
) -> None:
    """List a collection in display order."""
    conn = _open()
    try:
        items = list_items(conn, name)
        if not items:
            typer.echo(f"No {name} items.")
            return
        for item in items:
            extra = ""
            if item.filename:
                extra = f"  file={item.filename}"
            if item.active is not None:
                extra = f"  active={item.active}  signups={len(item.roster)}"
            typer.echo(f"{item.position:>3}  {item.id}  {item.title!r}{extra}")
    except ContentStoreError as exc:
        _fail(exc)
    finally:
        conn.close()


@content_app.command("add")
def content_add(
    name: str = typer.Argument(..., help="Collection: news | faq | classes."),
    title: str = typer.Option(..., help="Item title."),
    content: str = typer.Option(..., help="Item body (HTML allowed)."),
    date: Optional[str] = typer.Option(None, "--date", help="Display date, YYYY-MM-DD."),
    inactive: bool = typer.Option(False, "--inactive", help="Classes only: closed for signup."),
) -> None:
    """Append an item to a collection."""
    conn = _open()
    try:
        item = add_item(
            conn,
            name,
            title=title,
            content=content,
            editable_date=date,
            active=(not inactive) if name == "classes" else None,
        )
        typer.echo(f"✅ Added {name} item: {item.title} [{item.id}]")
    except ContentStoreError as exc:
        _fail(exc)
    finally:
        conn.close()


@content_app.command("update")
def content_update(
    name: str = typer.Argument(..., help="Collection name."),
    item_id: str = typer.Argument(..., help="Item id."),
    title: Optional[str] = typer.Option(None, help="New title."),
    content: Optional[str] = typer.Option(None, help="New body."),
    date: Optional[str] = typer.Option(None, "--date", help="New display date."),
    active: Optional[bool] = typer.Option(None, "--active/--inactive", help="Classes only."),
) -> None:
    """Change fields of an item."""
    fields = {
        key: value
        for key, value in {
            "title": title,
            "content": content,
            "editable_date": date,
            "active": active,
        }.items()
        if value is not None
    }
    conn = _open()
    try:
        item = update_item(conn, name, item_id, **fields)
        typer.echo(f"✅ Updated {name} item: {item.title} [{item.id}]")
    except ContentStoreError as exc:
        _fail(exc)
    finally:
        conn.close()


@content_app.command("delete")
def content_delete(
    name: str = typer.Argument(..., help="Collection name."),
    item_id: str = typer.Argument(..., help="Item id."),
) -> None:
    """Delete an item (and its stored attachment for forms)."""
    conn = _open()
    files = LocalFileStore(settings.upload_dir)
    try:
        item = delete_item(conn, name, item_id, file_store=files)
        typer.echo(f"🗑️  Deleted {name} item: {item.title}")
    except ContentStoreError as exc:
        _fail(exc)
    finally:
        conn.close()


@content_app.command("reorder")
def content_reorder(
    name: str = typer.Argument(..., help="Collection name."),
    ids: List[str] = typer.Argument(..., help="Every item id, in the new order."),
) -> None:
    """Persist a new display order for a collection."""
    conn = _open()
    try:
        items = reorder_items(conn, name, ids)
        typer.echo(f"✅ Reordered {len(items)} {name} items.")
    except ContentStoreError as exc:
        _fail(exc)
    finally:
        conn.close()


@content_app.command("roster")
def content_roster(
    class_id: str = typer.Argument(..., help="Class id."),
    remove: Optional[int] = typer.Option(None, "--remove", help="Remove the entry at this index."),
) -> None:
    """Show a class roster, or remove one entry from it."""
    conn = _open()
    try:
        if remove is not None:
            entry = delete_roster_entry(conn, class_id, remove)
            typer.echo(f"🗑️  Removed {entry.first_name} {entry.last_name} <{entry.email}>")
            return
        roster = get_roster(conn, class_id)
        if not roster:
            typer.echo("No signups yet.")
            return
        for index, entry in enumerate(roster):
            typer.echo(
                f"{index:>3}  {entry.first_name} {entry.last_name} <{entry.email}>"
                f"  {entry.signup_date:%Y-%m-%d %H:%M}"
            )
    except ContentStoreError as exc:
        _fail(exc)
    finally:
        conn.close()


@alert_app.command("show")
def alert_show() -> None:
    """Print the current banner configuration."""
    conn = _open()
    try:
        alert = get_alert(conn)
    finally:
        conn.close()
    state = "ACTIVE" if alert.active else "inactive"
    typer.echo(f"Alert ({state}, {alert.color}, {alert.orientation})")
    typer.echo(f"  title   [{'on' if alert.enable_title else 'off'}]: {alert.title!r}")
    typer.echo(f"  content [{'on' if alert.enable_content else 'off'}]: {alert.content!r}")


@alert_app.command("set")
def alert_set(
    title: Optional[str] = typer.Option(None, help="Banner title."),
    content: Optional[str] = typer.Option(None, help="Banner text."),
    color: Optional[str] = typer.Option(None, help="danger | warning | success | light."),
    orientation: Optional[str] = typer.Option(None, help="top | bottom."),
    active: Optional[bool] = typer.Option(None, "--active/--inactive", help="Show the banner."),
    enable_title: Optional[bool] = typer.Option(None, "--title-on/--title-off"),
    enable_content: Optional[bool] = typer.Option(None, "--content-on/--content-off"),
) -> None:
    """Change the banner configuration."""
    fields = {
        key: value
        for key, value in {
            "title": title,
            "content": content,
            "color": color,
            "orientation": orientation,
            "active": active,
            "enable_title": enable_title,
            "enable_content": enable_content,
        }.items()
        if value is not None
    }
    conn = _open()
    try:
        alert = save_alert(conn, **fields)
        typer.echo(f"✅ Alert saved ({'active' if alert.active else 'inactive'}).")
    except ContentStoreError as exc:
        _fail(exc)
    finally:
        conn.close()
