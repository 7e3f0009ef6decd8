"""Site-wide alert banner.

Routes
------
GET /alert    Current banner configuration (defaults if never saved)
PUT /alert    Partial update (admin)
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from sitecms.auth import require_admin
from sitecms.db.alerts import get_alert, save_alert

router = APIRouter()


class AlertUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    color: Optional[Literal["danger", "warning", "success", "light"]] = None
    orientation: Optional[Literal["top", "bottom"]] = None
    active: Optional[bool] = None
    enable_title: Optional[bool] = None
    enable_content: Optional[bool] = None


@router.get("", response_model=dict[str, Any])
def get_alert_endpoint(request: Request) -> dict[str, Any]:
    """Return the banner configuration."""
    return get_alert(request.app.state.db).to_dict()


@router.put("", response_model=dict[str, Any], dependencies=[Depends(require_admin)])
def save_alert_endpoint(body: AlertUpdate, request: Request) -> dict[str, Any]:
    """Merge the supplied fields into the banner configuration."""
    conn = request.app.state.db
    return save_alert(conn, **body.model_dump(exclude_none=True)).to_dict()
