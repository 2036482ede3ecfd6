"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the protocol services and
the test-suite share a single configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class SecuritySettings(BaseSettings):
    """Signing and encryption secrets."""

    model_config = SettingsConfigDict(env_prefix="OAUTH2_")

    secret_key: str = Field(
        ...,
        description="Key used to sign nonces and session cookies.",
    )
    token_encryption_secret: Optional[str] = Field(
        None,
        description=(
            "Secret used to derive the symmetric key for encrypting client "
            "secrets at rest. Falls back to secret_key when omitted."
        ),
    )
    session_cookie_name: str = Field("oauth2_session")
    session_ttl_seconds: int = Field(14 * 24 * 3600)


class OAuthSettings(BaseSettings):
    """Protocol constants for codes, tokens and clients."""

    model_config = SettingsConfigDict(env_prefix="OAUTH2_")

    auth_code_ttl_seconds: int = Field(600)
    auth_code_length: int = Field(12)
    client_id_length: int = Field(12)
    client_secret_length: int = Field(48)
    token_key_length: int = Field(32)
    nonce_ttl_seconds: int = Field(24 * 3600)
    allow_query_token: bool = Field(
        True,
        description="Accept the access_token query parameter as a bearer credential.",
    )
    revoke_tokens_on_client_delete: bool = Field(
        False,
        description="Revoke every token issued through a client when it is deleted.",
    )
    grant_types: Annotated[tuple[str, ...], NoDecode] = Field(("authorization_code", "implicit"))

    @field_validator("token_key_length", "auth_code_length")
    @classmethod
    def _minimum_entropy(cls, value: int) -> int:
        if value < 12:
            raise ValueError("Generated credentials must be at least 12 characters.")
        return value

    @field_validator("grant_types", mode="before")
    @classmethod
    def _split_grant_types(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing grant types as a comma-separated string."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(value)
        return tuple(item.strip() for item in value.split(",") if item.strip())


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    database_path: str = Field(
        "data/oauth2.db",
        validation_alias="OAUTH2_DATABASE_PATH",
        description="SQLite file holding clients, codes, tokens and identities.",
    )
    login_url: str = Field(
        "/login",
        validation_alias="OAUTH2_LOGIN_URL",
        description="Login page that receives a redirect_to parameter.",
    )
    host: str = Field("127.0.0.1", validation_alias="APP_HOST")
    port: int = Field(8000, validation_alias="APP_PORT")
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "OAuthSettings",
    "SecuritySettings",
    "get_settings",
]
