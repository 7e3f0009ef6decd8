"""Forms attachments: upload and verified download.

Routes
------
POST /forms                    Multipart upload → stored file + forms item
GET  /forms/{id}/download      Stream the attachment (verified callers only)

Listing, editing, reordering and deleting forms items goes through
``/collections/forms`` like every other collection.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse

from sitecms.auth import require_admin
from sitecms.db.items import add_item, get_item
from sitecms.errors import NotFoundError

router = APIRouter()


@router.post(
    "",
    status_code=201,
    response_model=dict[str, Any],
    dependencies=[Depends(require_admin)],
)
async def upload_form(
    request: Request,
    title: str = Form(...),
    content: str = Form(...),
    editable_date: Optional[str] = Form(None),
    file: UploadFile = File(...),
) -> dict[str, Any]:
    """Store the uploaded file, then create the forms item pointing at it.

    If the item cannot be created the stored file is removed again, so there
    is never a file without an item or an item without its file.
    """
    conn = request.app.state.db
    files = request.app.state.files

    # One byte past the cap is enough for the store to reject an oversized file.
    max_bytes = getattr(files, "max_bytes", None)
    data = await file.read(max_bytes + 1) if max_bytes is not None else await file.read()
    filename = files.save(file.filename or "", data)
    try:
        item = add_item(
            conn,
            "forms",
            title=title,
            content=content,
            editable_date=editable_date,
            filename=filename,
        )
    except Exception:
        files.delete(filename)
        raise
    return item.to_dict()


@router.get("/{item_id}/download")
def download_form(item_id: str, request: Request) -> FileResponse:
    """Return the attachment of a forms item to a verified caller."""
    if not request.app.state.download_authorizer(request):
        raise HTTPException(status_code=403, detail="Verification required")

    conn = request.app.state.db
    files = request.app.state.files
    item = get_item(conn, "forms", item_id)
    if item is None or not item.filename:
        raise NotFoundError(f"No forms item with id {item_id!r}")
    if not files.exists(item.filename):
        raise NotFoundError(f"Attachment for {item.title!r} is missing")
    return FileResponse(files.path_for(item.filename), filename=item.filename)
