"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from datetime import datetime, timedelta, timezone

import pytest

from oauth2_server.clients import SQLiteIdentityDirectory, SQLiteStore
from oauth2_server.core.config import OAuthSettings
from oauth2_server.models.oauth import Principal
from oauth2_server.services import (
    ClientRegistry,
    NonceService,
    SecretCipherService,
    SignedPayloadEncoder,
    TokenStore,
)


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(tmp_path) -> SQLiteStore:
    return SQLiteStore(str(tmp_path / "oauth2.db"))


@pytest.fixture
def oauth_settings() -> OAuthSettings:
    return OAuthSettings()


@pytest.fixture
def identities(store) -> SQLiteIdentityDirectory:
    directory = SQLiteIdentityDirectory(store)
    directory.put(Principal(id="alice", display_name="Alice", roles=["developer"]))
    directory.put(Principal(id="bob", display_name="Bob", roles=[]))
    directory.put(Principal(id="root", display_name="Admin", roles=["administrator"]))
    return directory


@pytest.fixture
def token_store(store, identities, oauth_settings, clock) -> TokenStore:
    return TokenStore(store, identities, oauth_settings, clock=clock)


@pytest.fixture
def registry(store, token_store, oauth_settings, clock) -> ClientRegistry:
    return ClientRegistry(
        store,
        SecretCipherService(secret="test-cipher"),
        token_store,
        oauth_settings,
        clock=clock,
    )


@pytest.fixture
def nonces(clock) -> NonceService:
    return NonceService(SignedPayloadEncoder("test-signing-key"), ttl_seconds=86400, clock=clock)


@pytest.fixture
def public_client(registry):
    client = registry.create(
        name="Mobile app",
        description="Public test client",
        type="public",
        redirect_uris=["https://client.example/cb"],
        owner_id="alice",
    )
    return registry.approve(client)


@pytest.fixture
def private_client(registry):
    client = registry.create(
        name="Web app",
        description="Confidential test client",
        type="private",
        redirect_uris=["https://web.example/callback"],
        owner_id="alice",
    )
    return registry.approve(client)
