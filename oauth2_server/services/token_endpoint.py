"""
Exchange of authorization codes for access tokens.
"""

from __future__ import annotations

import hmac
import logging
from http import HTTPStatus
from typing import Dict, Optional

from oauth2_server.core.errors import (
    AuthenticationError,
    ClientNotFoundError,
    OAuth2Error,
    PKCEError,
    ValidationError,
)
from oauth2_server.services.client_registry import ClientRegistry
from oauth2_server.services.pkce import verify_code_verifier
from oauth2_server.services.token_store import TokenStore

logger = logging.getLogger(__name__)

SUPPORTED_GRANT_TYPES = ("authorization_code",)


class TokenEndpoint:
    """Authenticate the client, redeem the code and mint an access token."""

    def __init__(self, clients: ClientRegistry, tokens: TokenStore) -> None:
        self._clients = clients
        self._tokens = tokens

    def exchange(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        grant_type: Optional[str],
        code: Optional[str],
        code_verifier: Optional[str] = None,
    ) -> Dict[str, str]:
        if grant_type not in SUPPORTED_GRANT_TYPES:
            raise ValidationError(
                "Only authorization_code grant type is supported.",
                code="unsupported_grant_type",
            )

        if not client_id:
            raise AuthenticationError("Missing client_id parameter.", code="no_client_id")

        try:
            client = self._clients.get_by_id(client_id)
        except ClientNotFoundError as exc:
            raise OAuth2Error(
                "Client ID is invalid.",
                code="invalid_client",
                status_code=HTTPStatus.BAD_REQUEST,
            ) from exc

        if client.requires_secret():
            if not client_secret:
                raise AuthenticationError("Missing client_secret parameter.", code="secret_required")
            if not client.secret or not hmac.compare_digest(
                client_secret.encode("utf-8"), client.secret.encode("utf-8")
            ):
                logger.warning("Rejected token request with an invalid secret for client %s", client.id)
                raise AuthenticationError("Client secret is invalid.", code="invalid_secret")

        auth_code = self._tokens.get_authorization_code(client, code)
        redeemed = self._tokens.redeem(auth_code)

        if redeemed.pkce is not None:
            if not code_verifier:
                raise PKCEError("Missing code_verifier parameter.", code="missing_code_verifier")
            if not verify_code_verifier(redeemed.pkce, code_verifier):
                logger.info("Rejected code verifier for client %s", client.id)
                raise PKCEError("Code verifier does not match the challenge.", code="invalid_code_verifier")

        token = self._tokens.create_access_token(client, redeemed.user_id)
        return {"access_token": token.key, "token_type": "bearer"}


__all__ = ["SUPPORTED_GRANT_TYPES", "TokenEndpoint"]
