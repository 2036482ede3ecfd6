"""
Authorization request handling for the authorization code and implicit grants.

A request moves through client resolution, redirect URI validation and PKCE
validation, then suspends twice: once while the resource owner logs in, and
once while the approval form is shown. All state needed to resume travels in
the query string and the submitted form, so handlers keep nothing between
requests.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Union
from urllib.parse import urlencode

from oauth2_server.core.errors import (
    AuthorizationError,
    ClientNotFoundError,
    InvalidActionError,
    InvalidNonceError,
    InvalidResponseTypeError,
    PKCEError,
)
from oauth2_server.models.oauth import Client, PKCEChallenge, Principal
from oauth2_server.services.client_registry import ClientRegistry
from oauth2_server.services.nonces import NonceService
from oauth2_server.services.pkce import validate_challenge
from oauth2_server.services.token_store import TokenStore
from oauth2_server.utils.uris import add_query_args, with_fragment_args

logger = logging.getLogger(__name__)

NONCE_FIELD = "_nonce"
SUBMIT_FIELD = "submit"

_PASSTHROUGH_PARAMS = (
    "response_type",
    "client_id",
    "redirect_uri",
    "scope",
    "state",
    "code_challenge",
    "code_challenge_method",
)


@dataclass
class AuthorizationRequest:
    """Validated parameters of a pending authorization request."""

    response_type: str
    client_id: str
    redirect_uri: str
    scope: Optional[str] = None
    state: Optional[str] = None
    pkce: Optional[PKCEChallenge] = None
    query: Dict[str, str] = field(default_factory=dict)


@dataclass
class RedirectOutcome:
    location: str


@dataclass
class LoginRequired:
    location: str


@dataclass
class ApprovalRequired:
    """The approval form should be shown; resubmit the query with the nonce."""

    client: Client
    request: AuthorizationRequest
    nonce: str
    actions: Sequence[str] = ("authorize", "cancel")


AuthorizationOutcome = Union[RedirectOutcome, LoginRequired, ApprovalRequired]
RedirectArgsTransformer = Callable[[Dict[str, str], Client, AuthorizationRequest], Dict[str, str]]


class GrantType(ABC):
    """Strategy for one ``response_type`` of the authorization endpoint."""

    def __init__(
        self,
        clients: ClientRegistry,
        tokens: TokenStore,
        nonces: NonceService,
        *,
        login_url: str,
        transformers: Sequence[RedirectArgsTransformer] = (),
    ) -> None:
        self._clients = clients
        self._tokens = tokens
        self._nonces = nonces
        self._login_url = login_url
        self._transformers = list(transformers)

    @abstractmethod
    def response_type_code(self) -> str:
        """The ``response_type`` value routed to this handler."""

    @abstractmethod
    def _issue(self, client: Client, request: AuthorizationRequest, identity: Principal) -> Dict[str, str]:
        """Mint the credential for an approved request and return redirect args."""

    @abstractmethod
    def _build_redirect(self, redirect_uri: str, args: Mapping[str, str]) -> str:
        ...

    def nonce_action(self, client: Client) -> str:
        return f"oauth2_authorize:{self.response_type_code()}:{client.id}"

    def handle_authorization_request(
        self,
        query_params: Mapping[str, str],
        form_body: Mapping[str, str],
        current_identity: Optional[Principal],
        *,
        request_url: Optional[str] = None,
    ) -> AuthorizationOutcome:
        client_id = query_params.get("client_id")
        if not client_id:
            raise AuthorizationError("Missing client_id parameter.", code="missing_client_id")

        try:
            client = self._clients.get_by_id(client_id)
        except ClientNotFoundError as exc:
            raise AuthorizationError(
                f"Client ID {client_id} is invalid.",
                code="invalid_client_id",
                data={"client_id": client_id},
            ) from exc

        redirect_uri = self.validate_redirect_uri(client, query_params.get("redirect_uri"))
        request = AuthorizationRequest(
            response_type=self.response_type_code(),
            client_id=client.id,
            redirect_uri=redirect_uri,
            scope=query_params.get("scope"),
            state=query_params.get("state"),
            query={key: query_params[key] for key in _PASSTHROUGH_PARAMS if query_params.get(key)},
        )

        try:
            request.pkce = self.validate_pkce(client, query_params)
        except PKCEError as exc:
            logger.info("Rejected PKCE parameters for client %s: %s", client.id, exc.code)
            return self._redirect(
                client,
                request,
                {"error": "invalid_request", "error_description": exc.code},
            )

        if current_identity is None:
            return LoginRequired(self._login_location(request, request_url))

        action = self.nonce_action(client)
        nonce = form_body.get(NONCE_FIELD)
        if not nonce:
            return ApprovalRequired(
                client=client,
                request=request,
                nonce=self._nonces.create(action, current_identity.id),
            )

        if not self._nonces.verify(nonce, action, current_identity.id):
            raise InvalidNonceError()

        return self.handle_submission(form_body.get(SUBMIT_FIELD), client, request, current_identity)

    def validate_redirect_uri(self, client: Client, redirect_uri: Optional[str]) -> str:
        """Resolve the redirect URI, requiring it unless exactly one is registered."""
        if not redirect_uri:
            registered = client.redirect_uris
            if len(registered) != 1:
                raise AuthorizationError(
                    "Redirect URI was required, but not found.",
                    code="missing_redirect_uri",
                )
            return registered[0]

        if not self._clients.check_redirect_uri(client, redirect_uri):
            raise AuthorizationError(
                "Specified redirect URI is not valid for this client.",
                code="invalid_redirect_uri",
            )
        return redirect_uri

    def validate_pkce(self, client: Client, query_params: Mapping[str, str]) -> Optional[PKCEChallenge]:
        challenge = query_params.get("code_challenge")
        if not challenge and not client.force_pkce:
            return None
        return validate_challenge(challenge, query_params.get("code_challenge_method"))

    def handle_submission(
        self,
        submit: Optional[str],
        client: Client,
        request: AuthorizationRequest,
        identity: Principal,
    ) -> RedirectOutcome:
        if submit == "authorize":
            args = self._issue(client, request, identity)
            logger.info(
                "User %s authorized client %s (%s)", identity.id, client.id, self.response_type_code()
            )
        elif submit == "cancel":
            args = {"error": "access_denied"}
        else:
            raise InvalidActionError(data={"action": submit})
        return self._redirect(client, request, args)

    def _redirect(
        self, client: Client, request: AuthorizationRequest, args: Dict[str, str]
    ) -> RedirectOutcome:
        if request.state:
            args["state"] = request.state
        for transform in self._transformers:
            args = transform(dict(args), client, request)
        return RedirectOutcome(self._build_redirect(request.redirect_uri, args))

    def _login_location(self, request: AuthorizationRequest, request_url: Optional[str]) -> str:
        return_to = request_url or f"?{urlencode(request.query)}"
        return add_query_args(self._login_url, {"redirect_to": return_to})


class AuthorizationCodeGrant(GrantType):
    """``response_type=code``: redirect with a short-lived code in the query string."""

    def response_type_code(self) -> str:
        return "code"

    def _issue(self, client: Client, request: AuthorizationRequest, identity: Principal) -> Dict[str, str]:
        auth_code = self._tokens.create_authorization_code(client, identity.id, request.pkce)
        return {"code": auth_code.code}

    def _build_redirect(self, redirect_uri: str, args: Mapping[str, str]) -> str:
        return add_query_args(redirect_uri, args)


class ImplicitGrant(GrantType):
    """``response_type=token``: redirect with the access token in the fragment."""

    def response_type_code(self) -> str:
        return "token"

    def _issue(self, client: Client, request: AuthorizationRequest, identity: Principal) -> Dict[str, str]:
        token = self._tokens.create_access_token(client, identity.id)
        return {"access_token": token.key, "token_type": "bearer"}

    def _build_redirect(self, redirect_uri: str, args: Mapping[str, str]) -> str:
        return with_fragment_args(redirect_uri, args)


GRANT_TYPE_CLASSES = {
    "authorization_code": AuthorizationCodeGrant,
    "implicit": ImplicitGrant,
}


class GrantTypeRegistry:
    """Named grant type strategies, routed by ``response_type``."""

    def __init__(self) -> None:
        self._types: Dict[str, GrantType] = {}

    def register(self, name: str, handler: GrantType) -> None:
        if not isinstance(handler, GrantType):
            raise TypeError(f"Grant type {name!r} must implement GrantType.")
        self._types[name] = handler

    def names(self) -> List[str]:
        return list(self._types)

    def __iter__(self) -> Iterator[GrantType]:
        return iter(self._types.values())

    def get_by_response_type(self, response_type: Optional[str]) -> Optional[GrantType]:
        # Later registrations override earlier ones for the same response type.
        for handler in reversed(list(self._types.values())):
            if handler.response_type_code() == response_type:
                return handler
        return None

    def dispatch(
        self,
        query_params: Mapping[str, str],
        form_body: Mapping[str, str],
        current_identity: Optional[Principal],
        *,
        request_url: Optional[str] = None,
    ) -> AuthorizationOutcome:
        handler = self.get_by_response_type(query_params.get("response_type"))
        if handler is None:
            raise InvalidResponseTypeError()
        return handler.handle_authorization_request(
            query_params, form_body, current_identity, request_url=request_url
        )


def build_grant_type_registry(
    names: Sequence[str],
    clients: ClientRegistry,
    tokens: TokenStore,
    nonces: NonceService,
    *,
    login_url: str,
    transformers: Sequence[RedirectArgsTransformer] = (),
) -> GrantTypeRegistry:
    registry = GrantTypeRegistry()
    for name in names:
        try:
            grant_class = GRANT_TYPE_CLASSES[name]
        except KeyError as exc:
            raise ValueError(f"Unknown grant type {name!r}") from exc
        registry.register(
            name,
            grant_class(clients, tokens, nonces, login_url=login_url, transformers=transformers),
        )
    return registry


__all__ = [
    "ApprovalRequired",
    "AuthorizationCodeGrant",
    "AuthorizationOutcome",
    "AuthorizationRequest",
    "GrantType",
    "GrantTypeRegistry",
    "ImplicitGrant",
    "LoginRequired",
    "NONCE_FIELD",
    "RedirectArgsTransformer",
    "RedirectOutcome",
    "SUBMIT_FIELD",
    "build_grant_type_registry",
]
