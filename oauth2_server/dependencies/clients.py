"""
Factory functions to provide shared stores and services as FastAPI dependencies.
"""

from functools import lru_cache

from oauth2_server.clients import SQLiteIdentityDirectory, SQLiteStore
from oauth2_server.core.config import get_settings
from oauth2_server.services import (
    BearerAuthenticator,
    ClientRegistry,
    GrantTypeRegistry,
    NonceService,
    Policy,
    RolePolicy,
    SecretCipherService,
    SessionManager,
    SignedPayloadEncoder,
    TokenEndpoint,
    TokenStore,
    build_grant_type_registry,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for service factories."""
    return get_settings()


@lru_cache()
def get_sqlite_store() -> SQLiteStore:
    """Provide shared SQLite record store."""
    return SQLiteStore(_settings().database_path)


@lru_cache()
def get_identity_directory() -> SQLiteIdentityDirectory:
    """Provide the directory resolving user ids to principals."""
    return SQLiteIdentityDirectory(get_sqlite_store())


@lru_cache()
def get_signed_payload_encoder() -> SignedPayloadEncoder:
    """Provide the HMAC encoder used for nonces and session cookies."""
    return SignedPayloadEncoder(secret_key=_settings().security.secret_key)


@lru_cache()
def get_secret_cipher_service() -> SecretCipherService:
    """Provide symmetric encryption helper for client secret storage."""
    security = _settings().security
    return SecretCipherService(secret=security.token_encryption_secret or security.secret_key)


@lru_cache()
def get_token_store() -> TokenStore:
    """Provide the authorization code and access token store."""
    return TokenStore(
        store=get_sqlite_store(),
        identities=get_identity_directory(),
        settings=_settings().oauth,
    )


@lru_cache()
def get_client_registry() -> ClientRegistry:
    """Provide the registry of OAuth 2 clients."""
    return ClientRegistry(
        store=get_sqlite_store(),
        cipher=get_secret_cipher_service(),
        tokens=get_token_store(),
        settings=_settings().oauth,
    )


@lru_cache()
def get_nonce_service() -> NonceService:
    return NonceService(
        encoder=get_signed_payload_encoder(),
        ttl_seconds=_settings().oauth.nonce_ttl_seconds,
    )


@lru_cache()
def get_session_manager() -> SessionManager:
    """Provide the session cookie reader shared with the login UI."""
    return SessionManager(
        encoder=get_signed_payload_encoder(),
        identities=get_identity_directory(),
        ttl_seconds=_settings().security.session_ttl_seconds,
    )


@lru_cache()
def get_grant_type_registry() -> GrantTypeRegistry:
    """Build the grant types enabled in configuration."""
    settings = _settings()
    return build_grant_type_registry(
        settings.oauth.grant_types,
        clients=get_client_registry(),
        tokens=get_token_store(),
        nonces=get_nonce_service(),
        login_url=settings.login_url,
    )


@lru_cache()
def get_token_endpoint() -> TokenEndpoint:
    return TokenEndpoint(clients=get_client_registry(), tokens=get_token_store())


@lru_cache()
def get_bearer_authenticator() -> BearerAuthenticator:
    """Provide the bearer token authenticator for API requests."""
    return BearerAuthenticator(
        tokens=get_token_store(),
        clients=get_client_registry(),
        identities=get_identity_directory(),
        allow_query_token=_settings().oauth.allow_query_token,
    )


@lru_cache()
def get_policy() -> Policy:
    """Provide the access control policy for administrative operations."""
    return RolePolicy()


__all__ = [
    "get_bearer_authenticator",
    "get_client_registry",
    "get_grant_type_registry",
    "get_identity_directory",
    "get_nonce_service",
    "get_policy",
    "get_secret_cipher_service",
    "get_session_manager",
    "get_signed_payload_encoder",
    "get_sqlite_store",
    "get_token_endpoint",
    "get_token_store",
]
