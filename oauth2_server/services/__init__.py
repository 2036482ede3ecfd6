"""Service layer exports."""

from .authentication import AuthenticationContext, BearerAuthenticator
from .client_registry import ClientRegistry
from .grant_types import (
    ApprovalRequired,
    AuthorizationCodeGrant,
    AuthorizationRequest,
    GrantType,
    GrantTypeRegistry,
    ImplicitGrant,
    LoginRequired,
    RedirectOutcome,
    build_grant_type_registry,
)
from .nonces import NonceService
from .pkce import generate_code_pair
from .policy import Action, Policy, RolePolicy, ensure_can
from .secret_cipher import SecretCipherService
from .sessions import SessionManager
from .signing import InvalidSignatureError, SignedPayloadEncoder
from .token_endpoint import TokenEndpoint
from .token_store import TokenStore

__all__ = [
    "Action",
    "ApprovalRequired",
    "AuthenticationContext",
    "AuthorizationCodeGrant",
    "AuthorizationRequest",
    "BearerAuthenticator",
    "ClientRegistry",
    "GrantType",
    "GrantTypeRegistry",
    "ImplicitGrant",
    "InvalidSignatureError",
    "LoginRequired",
    "NonceService",
    "Policy",
    "RedirectOutcome",
    "RolePolicy",
    "SecretCipherService",
    "SessionManager",
    "SignedPayloadEncoder",
    "TokenEndpoint",
    "TokenStore",
    "build_grant_type_registry",
    "ensure_can",
    "generate_code_pair",
]
