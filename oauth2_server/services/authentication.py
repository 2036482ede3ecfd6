"""
Bearer token authentication for incoming API requests.

The authenticator either has no opinion (no token presented), resolves the
token to a principal, or rejects the request outright.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from oauth2_server.clients.identity_directory import IdentityDirectory
from oauth2_server.core.errors import ClientNotFoundError, InvalidTokenError, TokenNotFoundError
from oauth2_server.models.oauth import AccessToken, Principal
from oauth2_server.services.client_registry import ClientRegistry
from oauth2_server.services.token_store import TokenStore

logger = logging.getLogger(__name__)

_BEARER_PATTERN = re.compile(r"^Bearer ([a-zA-Z0-9\-._~\+\/=]+)$", re.IGNORECASE)
_BEARER_SCHEME = re.compile(r"^Bearer(\s|$)", re.IGNORECASE)


@dataclass
class AuthenticationContext:
    """Per-request state; ``querying_token`` guards against re-entrant lookups."""

    querying_token: bool = False
    token: Optional[AccessToken] = None


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


class BearerAuthenticator:
    def __init__(
        self,
        tokens: TokenStore,
        clients: ClientRegistry,
        identities: IdentityDirectory,
        *,
        allow_query_token: bool = True,
    ) -> None:
        self._tokens = tokens
        self._clients = clients
        self._identities = identities
        self._allow_query_token = allow_query_token

    def extract_token(self, headers: Mapping[str, str], query_params: Mapping[str, Any]) -> Optional[str]:
        """Return the presented token; the Authorization header wins over the query."""
        authorization = _header(headers, "Authorization")
        if authorization:
            match = _BEARER_PATTERN.match(authorization.strip())
            if match:
                return match.group(1)
            if _BEARER_SCHEME.match(authorization.strip()):
                raise InvalidTokenError("Malformed bearer token.")

        if not self._allow_query_token or "access_token" not in query_params:
            return None

        token = query_params["access_token"]
        if token == "":
            return None
        if not isinstance(token, str):
            raise InvalidTokenError()
        logger.warning(
            "Access token supplied in the query string; use the Authorization header instead"
        )
        return token

    def authenticate(
        self,
        headers: Mapping[str, str],
        query_params: Mapping[str, Any],
        context: AuthenticationContext,
    ) -> Optional[Principal]:
        if context.querying_token:
            return None

        key = self.extract_token(headers, query_params)
        if key is None:
            return None

        context.querying_token = True
        try:
            principal, token = self._resolve(key)
        finally:
            context.querying_token = False

        context.token = token
        return principal

    def _resolve(self, key: str) -> tuple[Principal, AccessToken]:
        try:
            token = self._tokens.get_access_token(key)
        except TokenNotFoundError as exc:
            raise InvalidTokenError() from exc

        try:
            client = self._clients.get_by_id(token.client_id)
        except ClientNotFoundError as exc:
            logger.info("Rejected token issued through missing client %s", token.client_id)
            raise InvalidTokenError() from exc
        if not client.is_published:
            logger.info("Rejected token issued through unapproved client %s", client.id)
            raise InvalidTokenError()

        principal = self._identities.get(token.user_id)
        if principal is None:
            raise InvalidTokenError()
        return principal, token


__all__ = ["AuthenticationContext", "BearerAuthenticator"]
