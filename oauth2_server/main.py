"""
FastAPI application entrypoint for the OAuth 2 authorization server.
"""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from oauth2_server.api.routes import login_router, router as api_router
from oauth2_server.core.config import get_settings
from oauth2_server.core.errors import InvalidTokenError, OAuth2Error, StorageError
from oauth2_server.core.logging import configure_logging

logger = logging.getLogger(__name__)


async def handle_oauth2_error(request: Request, exc: OAuth2Error) -> JSONResponse:
    """Render protocol errors as ``{"error", "error_description"}`` bodies."""
    if isinstance(exc, StorageError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc.code)
    headers = None
    if isinstance(exc, InvalidTokenError):
        headers = {"WWW-Authenticate": 'Bearer error="invalid_token"'}
    return JSONResponse(exc.to_dict(), status_code=int(exc.status_code), headers=headers)


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="OAuth 2 Authorization Server",
        version="0.1.0",
        description="Authorization code and implicit grants with bearer token authentication.",
    )
    app.add_exception_handler(OAuth2Error, handle_oauth2_error)
    app.include_router(api_router, prefix="/api")
    app.include_router(login_router)
    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn on the configured host and port."""
    settings = get_settings()
    uvicorn.run(
        "oauth2_server.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


__all__ = ["app", "create_app", "handle_oauth2_error", "run"]
