"""
FastAPI routes for the OAuth 2 authorization server.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, Form, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from oauth2_server.core.errors import (
    ClientNotFoundError,
    OAuth2Error,
    TokenNotFoundError,
)
from oauth2_server.dependencies import (
    get_client_credentials,
    get_client_registry,
    get_current_principal,
    get_grant_type_registry,
    get_policy,
    get_session_principal,
    get_token_endpoint,
    get_token_store,
    require_principal,
)
from oauth2_server.models.oauth import AccessToken, Principal, get_personal_client
from oauth2_server.schemas import (
    AccessTokenView,
    ApprovalResponse,
    ClientCreateRequest,
    ClientResponse,
    ClientSummary,
    ClientUpdateRequest,
    PersonalTokenRequest,
    PersonalTokenResponse,
    PrincipalResponse,
    TokenResponse,
)
from oauth2_server.services import (
    Action,
    ApprovalRequired,
    ClientRegistry,
    GrantTypeRegistry,
    LoginRequired,
    Policy,
    TokenEndpoint,
    TokenStore,
    ensure_can,
)

# Every API call rejects a bearer credential that does not resolve.
router = APIRouter(dependencies=[Depends(get_current_principal)])
login_router = APIRouter()
logger = logging.getLogger(__name__)


def _token_view(token: AccessToken, registry: ClientRegistry) -> AccessTokenView:
    try:
        client = registry.get_by_id(token.client_id)
    except ClientNotFoundError:
        summary = None
    else:
        summary = ClientSummary(id=client.id, name=client.name, description=client.description)
    return AccessTokenView(
        key=token.key,
        user_id=token.user_id,
        client=summary,
        created_at=token.created_at,
        meta=token.meta,
    )


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/", status_code=HTTPStatus.OK)
async def index(
    request: Request,
    grant_types: Annotated[GrantTypeRegistry, Depends(get_grant_type_registry)],
) -> dict:
    """Advertise the OAuth 2 endpoints so clients can discover them."""
    return {
        "authentication": {
            "oauth2": {
                "endpoints": {
                    "authorization": str(request.url_for("authorize")),
                    "token": str(request.url_for("issue_access_token")),
                },
                "grant_types": grant_types.names(),
            }
        }
    }


# Authorization endpoint


@login_router.api_route("/login/oauth2/authorize", methods=["GET", "POST"], name="authorize")
async def authorize(
    request: Request,
    grant_types: Annotated[GrantTypeRegistry, Depends(get_grant_type_registry)],
    principal: Annotated[Optional[Principal], Depends(get_session_principal)],
) -> Response:
    """
    Run the authorization request state machine for the logged-in user.

    Redirects either to the login page or back to the client. When the user
    still has to approve the request, returns what the approval form needs.
    """
    form_body: Dict[str, str] = {}
    if request.method == "POST":
        form = await request.form()
        form_body = {key: value for key, value in form.items() if isinstance(value, str)}

    outcome = grant_types.dispatch(
        dict(request.query_params),
        form_body,
        principal,
        request_url=str(request.url),
    )

    if isinstance(outcome, ApprovalRequired):
        client = outcome.client
        payload = ApprovalResponse(
            client=ClientSummary(id=client.id, name=client.name, description=client.description),
            user_id=principal.id if principal else "",
            nonce=outcome.nonce,
            actions=list(outcome.actions),
            request=outcome.request.query,
        )
        return JSONResponse(payload.model_dump(), status_code=HTTPStatus.OK)

    if isinstance(outcome, LoginRequired):
        logger.debug("Authorization request needs a login first")
    return RedirectResponse(url=outcome.location, status_code=HTTPStatus.FOUND)


@router.get("/oauth2/authorize", status_code=HTTPStatus.FOUND)
async def authorize_redirect(request: Request) -> JSONResponse:
    """Forward API consumers to the login-bound authorization endpoint."""
    url = str(request.url_for("authorize"))
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return JSONResponse({"url": url}, status_code=HTTPStatus.FOUND, headers={"Location": url})


@router.post("/oauth2/access_token", name="issue_access_token", response_model=TokenResponse)
async def issue_access_token(
    response: Response,
    token_endpoint: Annotated[TokenEndpoint, Depends(get_token_endpoint)],
    credentials: Annotated[Optional[Tuple[str, str]], Depends(get_client_credentials)],
    grant_type: Annotated[Optional[str], Form()] = None,
    code: Annotated[Optional[str], Form()] = None,
    client_id: Annotated[Optional[str], Form()] = None,
    client_secret: Annotated[Optional[str], Form()] = None,
    code_verifier: Annotated[Optional[str], Form()] = None,
) -> TokenResponse:
    """Exchange an authorization code for an access token."""
    if credentials is not None and credentials[0]:
        client_id = credentials[0]
        client_secret = credentials[1] or client_secret

    result = token_endpoint.exchange(
        client_id=client_id,
        client_secret=client_secret,
        grant_type=grant_type,
        code=code,
        code_verifier=code_verifier,
    )
    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"
    return TokenResponse(**result)


# Client administration


@router.get("/oauth2/clients", response_model=List[ClientResponse])
async def list_clients(
    principal: Annotated[Principal, Depends(require_principal)],
    registry: Annotated[ClientRegistry, Depends(get_client_registry)],
    policy: Annotated[Policy, Depends(get_policy)],
) -> List[ClientResponse]:
    ensure_can(policy, principal, Action.LIST_CLIENTS)
    return [
        ClientResponse.from_client(client)
        for client in registry.list_clients()
        if policy.can(principal, Action.VIEW_CLIENT, client)
    ]


@router.post("/oauth2/clients", status_code=HTTPStatus.CREATED, response_model=ClientResponse)
async def create_client(
    payload: ClientCreateRequest,
    principal: Annotated[Principal, Depends(require_principal)],
    registry: Annotated[ClientRegistry, Depends(get_client_registry)],
    policy: Annotated[Policy, Depends(get_policy)],
) -> ClientResponse:
    ensure_can(policy, principal, Action.CREATE_CLIENT)
    client = registry.create(
        name=payload.name,
        description=payload.description,
        type=payload.type,
        redirect_uris=payload.redirect_uris,
        owner_id=principal.id,
        force_pkce=payload.force_pkce,
    )
    return ClientResponse.from_client(client)


@router.get("/oauth2/clients/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: str,
    principal: Annotated[Principal, Depends(require_principal)],
    registry: Annotated[ClientRegistry, Depends(get_client_registry)],
    policy: Annotated[Policy, Depends(get_policy)],
) -> ClientResponse:
    client = registry.get_by_id(client_id)
    ensure_can(policy, principal, Action.VIEW_CLIENT, client)
    return ClientResponse.from_client(client)


@router.patch("/oauth2/clients/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: str,
    payload: ClientUpdateRequest,
    principal: Annotated[Principal, Depends(require_principal)],
    registry: Annotated[ClientRegistry, Depends(get_client_registry)],
    policy: Annotated[Policy, Depends(get_policy)],
) -> ClientResponse:
    client = registry.get_by_id(client_id)
    ensure_can(policy, principal, Action.EDIT_CLIENT, client)
    updated = registry.update(client, payload.model_dump(exclude_unset=True))
    return ClientResponse.from_client(updated)


@router.delete("/oauth2/clients/{client_id}")
async def delete_client(
    client_id: str,
    principal: Annotated[Principal, Depends(require_principal)],
    registry: Annotated[ClientRegistry, Depends(get_client_registry)],
    policy: Annotated[Policy, Depends(get_policy)],
) -> dict:
    client = registry.get_by_id(client_id)
    ensure_can(policy, principal, Action.DELETE_CLIENT, client)
    if not registry.delete(client):
        raise OAuth2Error("Client could not be deleted.", code="could_not_delete_client")
    return {"deleted": True, "id": client.id}


@router.post("/oauth2/clients/{client_id}/approve", response_model=ClientResponse)
async def approve_client(
    client_id: str,
    principal: Annotated[Principal, Depends(require_principal)],
    registry: Annotated[ClientRegistry, Depends(get_client_registry)],
    policy: Annotated[Policy, Depends(get_policy)],
) -> ClientResponse:
    client = registry.get_by_id(client_id)
    ensure_can(policy, principal, Action.APPROVE_CLIENT, client)
    return ClientResponse.from_client(registry.approve(client))


@router.post("/oauth2/clients/{client_id}/secret", response_model=ClientResponse)
async def regenerate_client_secret(
    client_id: str,
    principal: Annotated[Principal, Depends(require_principal)],
    registry: Annotated[ClientRegistry, Depends(get_client_registry)],
    policy: Annotated[Policy, Depends(get_policy)],
) -> ClientResponse:
    client = registry.get_by_id(client_id)
    ensure_can(policy, principal, Action.EDIT_CLIENT, client)
    return ClientResponse.from_client(registry.regenerate_secret(client))


# Profile tokens


@router.get("/users/me", response_model=PrincipalResponse)
async def current_user(
    principal: Annotated[Principal, Depends(require_principal)],
) -> PrincipalResponse:
    return PrincipalResponse(
        id=principal.id, display_name=principal.display_name, roles=list(principal.roles)
    )


@router.get("/users/{user_id}/tokens", response_model=List[AccessTokenView])
async def list_user_tokens(
    user_id: str,
    principal: Annotated[Principal, Depends(require_principal)],
    tokens: Annotated[TokenStore, Depends(get_token_store)],
    registry: Annotated[ClientRegistry, Depends(get_client_registry)],
    policy: Annotated[Policy, Depends(get_policy)],
) -> List[AccessTokenView]:
    ensure_can(policy, principal, Action.LIST_TOKENS, user_id)
    return [_token_view(token, registry) for token in tokens.get_tokens_for_identity(user_id)]


@router.post(
    "/users/{user_id}/tokens",
    status_code=HTTPStatus.CREATED,
    response_model=PersonalTokenResponse,
)
async def create_personal_token(
    user_id: str,
    payload: PersonalTokenRequest,
    principal: Annotated[Principal, Depends(require_principal)],
    tokens: Annotated[TokenStore, Depends(get_token_store)],
    registry: Annotated[ClientRegistry, Depends(get_client_registry)],
    policy: Annotated[Policy, Depends(get_policy)],
) -> PersonalTokenResponse:
    """Issue a personal access token; the key is only shown in this response."""
    ensure_can(policy, principal, Action.CREATE_TOKEN, user_id)
    token = tokens.create_access_token(get_personal_client(), user_id, meta={"name": payload.name})
    return PersonalTokenResponse(access_token=token.key, token=_token_view(token, registry))


@router.delete("/users/{user_id}/tokens/{key}")
async def revoke_user_token(
    user_id: str,
    key: str,
    principal: Annotated[Principal, Depends(require_principal)],
    tokens: Annotated[TokenStore, Depends(get_token_store)],
    policy: Annotated[Policy, Depends(get_policy)],
) -> dict:
    token = tokens.get_access_token(key)
    if token.user_id != user_id:
        raise TokenNotFoundError()
    ensure_can(policy, principal, Action.REVOKE_TOKEN, token)
    return {"revoked": tokens.revoke(token)}


__all__ = ["login_router", "router"]
