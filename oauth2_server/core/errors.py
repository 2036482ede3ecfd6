"""
Exception hierarchy for the OAuth 2 protocol engine.

Every error carries a machine readable ``code`` (used as the ``error`` member
of JSON error bodies), a human readable message and the HTTP status the API
layer should answer with.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Dict, Optional


class OAuth2Error(Exception):
    """Base class for all protocol errors."""

    status_code: int = HTTPStatus.BAD_REQUEST
    code: str = "invalid_request"
    message: str = "The request is invalid."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.data = data or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "error_description": self.message}


class ValidationError(OAuth2Error):
    """Missing or malformed parameters. Never retried."""


class ClientValidationError(ValidationError):
    """Client registration data failed validation."""


class PKCEError(ValidationError):
    """PKCE challenge parameters are malformed."""


class AuthorizationError(OAuth2Error):
    """Terminal failure of an authorization request."""


class InvalidActionError(AuthorizationError):
    code = "invalid_action"
    message = "Invalid form action."


class InvalidNonceError(AuthorizationError):
    code = "invalid_nonce"
    status_code = HTTPStatus.FORBIDDEN
    message = "Invalid nonce."


class InvalidResponseTypeError(AuthorizationError):
    code = "invalid_response_type"
    message = "Invalid response type specified."


class AuthenticationError(OAuth2Error):
    """Credential presented by the caller was rejected."""

    status_code = HTTPStatus.UNAUTHORIZED


class InvalidTokenError(AuthenticationError):
    code = "invalid_token"
    message = "Supplied token is invalid."


class NotFoundError(OAuth2Error):
    status_code = HTTPStatus.NOT_FOUND
    code = "not_found"


class ClientNotFoundError(NotFoundError):
    code = "invalid_client"
    message = "Client ID is invalid."


class AuthorizationCodeNotFoundError(NotFoundError):
    code = "invalid_code"
    message = "Authorization code is not valid for the specified client."


class TokenNotFoundError(NotFoundError):
    code = "invalid_token"
    message = "Access token not found."


class PermissionDeniedError(OAuth2Error):
    status_code = HTTPStatus.FORBIDDEN
    code = "forbidden"
    message = "Sorry, you are not allowed to do that."


class PersonalClientError(OAuth2Error):
    """Operation is not supported by the personal access token client."""

    code = "personal_client_unsupported"


class StorageError(OAuth2Error):
    """The underlying store rejected a write."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    code = "could_not_save"
    message = "Could not save record."


__all__ = [
    "AuthenticationError",
    "AuthorizationCodeNotFoundError",
    "AuthorizationError",
    "ClientNotFoundError",
    "ClientValidationError",
    "InvalidActionError",
    "InvalidNonceError",
    "InvalidResponseTypeError",
    "InvalidTokenError",
    "NotFoundError",
    "OAuth2Error",
    "PKCEError",
    "PermissionDeniedError",
    "PersonalClientError",
    "StorageError",
    "TokenNotFoundError",
    "ValidationError",
]
