"""Expose dependency helpers for FastAPI routers."""

from .auth import (
    get_authentication_context,
    get_client_credentials,
    get_current_principal,
    get_session_principal,
    require_principal,
)
from .clients import (
    get_bearer_authenticator,
    get_client_registry,
    get_grant_type_registry,
    get_identity_directory,
    get_nonce_service,
    get_policy,
    get_secret_cipher_service,
    get_session_manager,
    get_signed_payload_encoder,
    get_sqlite_store,
    get_token_endpoint,
    get_token_store,
)
from .config import SettingsDependency, get_app_settings, get_oauth_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_authentication_context",
    "get_bearer_authenticator",
    "get_client_credentials",
    "get_client_registry",
    "get_current_principal",
    "get_grant_type_registry",
    "get_identity_directory",
    "get_nonce_service",
    "get_oauth_settings",
    "get_policy",
    "get_secret_cipher_service",
    "get_session_manager",
    "get_session_principal",
    "get_signed_payload_encoder",
    "get_sqlite_store",
    "get_token_endpoint",
    "get_token_store",
    "require_principal",
]
