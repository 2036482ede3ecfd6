"""Public schema exports."""

from .clients import ClientCreateRequest, ClientResponse, ClientSummary, ClientUpdateRequest
from .tokens import (
    AccessTokenView,
    ApprovalResponse,
    PersonalTokenRequest,
    PersonalTokenResponse,
    PrincipalResponse,
    TokenResponse,
)

__all__ = [
    "AccessTokenView",
    "ApprovalResponse",
    "ClientCreateRequest",
    "ClientResponse",
    "ClientSummary",
    "ClientUpdateRequest",
    "PersonalTokenRequest",
    "PersonalTokenResponse",
    "PrincipalResponse",
    "TokenResponse",
]
