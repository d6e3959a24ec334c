"""Application factory that serves both the API and the browser client."""
from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import create_app as create_api_app, http_error_response
from .config import Settings, load_settings
from .database import Database
from .web import register_ui_routes


def create_application(
    *,
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """Create the combined ASGI application.

    The database is initialised here, before the app is returned, so no
    request can reach the user service against a missing schema.
    """

    if settings is None:
        settings = load_settings()

    if database is None:
        database = Database(settings.database_path)
    database.initialize()

    api_app = create_api_app(database=database)

    app = FastAPI(
        title="Userbook",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.add_exception_handler(StarletteHTTPException, http_error_response)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.database = database
    app.state.api = api_app

    app.mount("/api", api_app)
    register_ui_routes(app, api_base_url="/api")

    return app


__all__ = ["create_application"]
