"""CRUD and ordering endpoints for the content collections.

Routes
------
GET    /collections/{name}            List items in display order
GET    /collections/{name}/{id}       Fetch a single item
POST   /collections/{name}            Add an item (not forms, see /forms)
PUT    /collections/{name}/order      Persist a new display order
PUT    /collections/{name}/{id}       Update item fields
DELETE /collections/{name}/{id}       Delete an item (and its attachment)
"""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from sitecms.auth import require_admin
from sitecms.db.items import (
    add_item,
    check_collection,
    delete_item,
    get_item,
    list_items,
    reorder_items,
    update_item,
)
from sitecms.errors import NotFoundError, ValidationError

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class ItemCreate(BaseModel):
    title: str
    content: str
    editable_date: Optional[date] = None
    active: Optional[bool] = None


class ItemUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    editable_date: Optional[date] = None
    active: Optional[bool] = None


class ReorderRequest(BaseModel):
    ids: list[str]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/{name}", response_model=list[dict[str, Any]])
def list_endpoint(name: str, request: Request) -> list[dict[str, Any]]:
    """Return every item of collection *name* in display order."""
    conn = request.app.state.db
    return [item.to_dict() for item in list_items(conn, name)]


@router.get("/{name}/{item_id}", response_model=dict[str, Any])
def get_endpoint(name: str, item_id: str, request: Request) -> dict[str, Any]:
    """Fetch a single item by id."""
    conn = request.app.state.db
    item = get_item(conn, name, item_id)
    if item is None:
        raise NotFoundError(f"No {name} item with id {item_id!r}")
    return item.to_dict()


@router.post(
    "/{name}",
    status_code=201,
    response_model=dict[str, Any],
    dependencies=[Depends(require_admin)],
)
def add_endpoint(name: str, body: ItemCreate, request: Request) -> dict[str, Any]:
    """Append a new item to the end of collection *name*."""
    if check_collection(name) == "forms":
        raise ValidationError("Forms need an attachment; upload them through /forms")
    conn = request.app.state.db
    item = add_item(
        conn,
        name,
        title=body.title,
        content=body.content,
        editable_date=body.editable_date,
        active=body.active,
    )
    return item.to_dict()


@router.put(
    "/{name}/order",
    response_model=list[dict[str, Any]],
    dependencies=[Depends(require_admin)],
)
def reorder_endpoint(
    name: str, body: ReorderRequest, request: Request
) -> list[dict[str, Any]]:
    """Replace the display order; ``ids`` must list every item exactly once."""
    conn = request.app.state.db
    return [item.to_dict() for item in reorder_items(conn, name, body.ids)]


@router.put(
    "/{name}/{item_id}",
    response_model=dict[str, Any],
    dependencies=[Depends(require_admin)],
)
def update_endpoint(
    name: str, item_id: str, body: ItemUpdate, request: Request
) -> dict[str, Any]:
    """Update one or more fields of an item."""
    conn = request.app.state.db
    updates = body.model_dump(exclude_unset=True)
    item = update_item(conn, name, item_id, **updates)
    return item.to_dict()


@router.delete("/{name}/{item_id}", dependencies=[Depends(require_admin)])
def delete_endpoint(name: str, item_id: str, request: Request) -> Response:
    """Delete an item; a forms attachment is removed with it."""
    conn = request.app.state.db
    delete_item(conn, name, item_id, file_store=request.app.state.files)
    return Response(status_code=204)
