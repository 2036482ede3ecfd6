"""
Dependencies resolving the principal behind a request.

API routes accept a bearer token first and fall back to the login session
cookie. The authorization endpoint only looks at the session.
"""

from __future__ import annotations

import base64
from typing import Annotated, Optional, Tuple

from fastapi import Depends, Request

from oauth2_server.core.config import AppSettings
from oauth2_server.core.errors import AuthenticationError
from oauth2_server.models.oauth import Principal
from oauth2_server.services import AuthenticationContext, BearerAuthenticator, SessionManager

from .clients import get_bearer_authenticator, get_session_manager
from .config import get_app_settings


def get_authentication_context(request: Request) -> AuthenticationContext:
    """Return the context stored on this request, creating it on first use."""
    context = getattr(request.state, "authentication", None)
    if context is None:
        context = AuthenticationContext()
        request.state.authentication = context
    return context


def get_session_principal(
    request: Request,
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
) -> Optional[Principal]:
    return sessions.read(request.cookies.get(settings.security.session_cookie_name))


def get_current_principal(
    request: Request,
    authenticator: Annotated[BearerAuthenticator, Depends(get_bearer_authenticator)],
    context: Annotated[AuthenticationContext, Depends(get_authentication_context)],
    session_principal: Annotated[Optional[Principal], Depends(get_session_principal)],
) -> Optional[Principal]:
    principal = authenticator.authenticate(request.headers, request.query_params, context)
    if principal is not None:
        return principal
    return session_principal


def get_client_credentials(request: Request) -> Optional[Tuple[str, str]]:
    """
    Read HTTP Basic client credentials from the Authorization header.

    Returns ``None`` when another scheme (or none) is used. A Basic header that
    cannot be decoded is rejected as ``invalid_client``.
    """
    authorization = request.headers.get("Authorization")
    if not authorization:
        return None
    scheme, _, encoded = authorization.partition(" ")
    if scheme.lower() != "basic":
        return None
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except ValueError as exc:
        raise AuthenticationError(
            "Client credentials could not be decoded.", code="invalid_client"
        ) from exc
    client_id, separator, client_secret = decoded.partition(":")
    if not separator:
        raise AuthenticationError(
            "Client credentials could not be decoded.", code="invalid_client"
        )
    return client_id, client_secret


def require_principal(
    principal: Annotated[Optional[Principal], Depends(get_current_principal)],
) -> Principal:
    if principal is None:
        raise AuthenticationError("You must be logged in to do that.", code="not_logged_in")
    return principal


__all__ = [
    "get_authentication_context",
    "get_client_credentials",
    "get_current_principal",
    "get_session_principal",
    "require_principal",
]
