"""Access checks consumed by the HTTP layer.

Two capabilities are injected rather than hard-wired:

* the **admin gate**: dashboard routes require ``Authorization: Bearer
  <SITECMS_ADMIN_TOKEN>``;
* the **download authorizer**: a ``Callable[[Request], bool]`` answering
  whether the caller is *verified* (signed-in admin, or a client that passed
  a CAPTCHA challenge).  The CAPTCHA check itself lives outside this
  project; plug it in through ``create_app(download_authorizer=...)``.
"""

from __future__ import annotations

import hmac
from typing import Callable, Optional

from fastapi import Header, HTTPException, Request

from sitecms.config import settings

DownloadAuthorizer = Callable[[Request], bool]


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    return authorization.split(" ", 1)[1].strip()


def is_admin(request: Request) -> bool:
    """True when *request* carries the configured admin token."""
    expected = settings.admin_token
    token = _bearer_token(request.headers.get("authorization"))
    if not expected or not token:
        return False
    return hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8"))


def require_admin(
    request: Request, authorization: Optional[str] = Header(None)
) -> None:
    """FastAPI dependency guarding dashboard routes."""
    if not settings.admin_token:
        raise HTTPException(status_code=503, detail="Dashboard access is not configured")
    if _bearer_token(authorization) is None:
        raise HTTPException(status_code=401, detail="Missing token")
    if not is_admin(request):
        raise HTTPException(status_code=401, detail="Invalid token")


def admin_only(request: Request) -> bool:
    """Default download authorizer: only the signed-in admin is verified."""
    return is_admin(request)
