"""Class signup endpoints.

Routes
------
POST   /classes/{id}/signup           Public signup for an open class
GET    /classes/{id}/roster           Roster in signup order (admin)
DELETE /classes/{id}/roster/{index}   Remove one roster entry (admin)
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel, EmailStr

from sitecms.auth import require_admin
from sitecms.db.items import get_item
from sitecms.db.rosters import delete_roster_entry, get_roster, sign_up
from sitecms.errors import NotFoundError

router = APIRouter()


class SignupRequest(BaseModel):
    first_name: str
    last_name: str
    email: EmailStr


@router.post("/{class_id}/signup", status_code=201, response_model=dict[str, Any])
def signup_endpoint(class_id: str, body: SignupRequest, request: Request) -> dict[str, Any]:
    """Add the caller to the roster of an active class."""
    conn = request.app.state.db
    item = get_item(conn, "classes", class_id)
    if item is None:
        raise NotFoundError(f"No class with id {class_id!r}")
    if not item.active:
        raise HTTPException(status_code=409, detail="This class is not open for signup")
    entry = sign_up(
        conn,
        class_id,
        first_name=body.first_name,
        last_name=body.last_name,
        email=str(body.email),
    )
    return entry.to_dict()


@router.get(
    "/{class_id}/roster",
    response_model=list[dict[str, Any]],
    dependencies=[Depends(require_admin)],
)
def roster_endpoint(class_id: str, request: Request) -> list[dict[str, Any]]:
    """Return the roster of a class, oldest signup first."""
    conn = request.app.state.db
    return [entry.to_dict() for entry in get_roster(conn, class_id)]


@router.delete("/{class_id}/roster/{index}", dependencies=[Depends(require_admin)])
def delete_roster_endpoint(class_id: str, index: int, request: Request) -> Response:
    """Remove the roster entry at *index*."""
    conn = request.app.state.db
    delete_roster_entry(conn, class_id, index)
    return Response(status_code=204)
