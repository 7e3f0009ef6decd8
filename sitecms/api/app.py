"""FastAPI application factory.

Lifespan
--------
On startup the app opens a single SQLite connection (shared across all
requests via ``request.app.state.db``), brings the store up to date with
:func:`~sitecms.db.migrations.initialise_store`, and wires the attachment
store and download authorizer onto ``app.state``.  On shutdown it closes the
connection cleanly.

Routers
-------
    /collections  list / add / update / delete / reorder content items
    /forms        attachment upload and verified download
    /classes      signup rosters
    /alert        site-wide banner
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sitecms import __version__
from sitecms.auth import DownloadAuthorizer, admin_only
from sitecms.config import settings
from sitecms.db import get_connection, initialise_store
from sitecms.errors import NotFoundError, UnknownCollectionError, ValidationError
from sitecms.logs import configure_logging
from sitecms.storage import FileStore, LocalFileStore

from sitecms.api.routers import alert as alert_router
from sitecms.api.routers import classes as classes_router
from sitecms.api.routers import collections as collections_router
from sitecms.api.routers import forms as forms_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the DB on startup and close it on shutdown."""
    configure_logging(settings.log_level)
    conn = get_connection()
    if initialise_store(conn, settings.legacy_data_file, app.state.files):
        logger.info("Created content store at %s", settings.db_path)
    app.state.db = conn
    try:
        yield
    finally:
        conn.close()


def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return handler


def create_app(
    file_store: Optional[FileStore] = None,
    download_authorizer: Optional[DownloadAuthorizer] = None,
) -> FastAPI:
    """Return a fully-configured FastAPI application instance.

    Args:
        file_store: Attachment storage; defaults to a :class:`LocalFileStore`
            under ``settings.upload_dir``.
        download_authorizer: Predicate deciding whether a request may
            download form attachments; defaults to admin-only.
    """
    app = FastAPI(
        title="Site Content API",
        description=(
            "Content store behind the marketing site and its dashboard: "
            "news, FAQ, forms and classes collections, class signup rosters, "
            "and the site-wide alert banner."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    app.state.files = file_store or LocalFileStore(
        settings.upload_dir,
        allowed_extensions=settings.allowed_upload_extensions,
        max_bytes=settings.max_upload_bytes,
    )
    app.state.download_authorizer = download_authorizer or admin_only

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # IndexOutOfRangeError is a NotFoundError and maps to 404 with it.
    app.add_exception_handler(ValidationError, _error_handler(422))
    app.add_exception_handler(NotFoundError, _error_handler(404))
    app.add_exception_handler(UnknownCollectionError, _error_handler(404))

    app.include_router(collections_router.router, prefix="/collections", tags=["collections"])
    app.include_router(forms_router.router, prefix="/forms", tags=["forms"])
    app.include_router(classes_router.router, prefix="/classes", tags=["classes"])
    app.include_router(alert_router.router, prefix="/alert", tags=["alert"])

    @app.get("/health", tags=["meta"])
    def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    return app


# Module-level instance used by uvicorn:
#   uvicorn sitecms.api.app:app --reload
app = create_app()
