try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from oauth2_server.core.errors import (
    AuthorizationCodeNotFoundError,
    OAuth2Error,
    ValidationError,
)
from oauth2_server.models.oauth import PKCEChallenge
from oauth2_server.services import TokenEndpoint
from oauth2_server.services.pkce import generate_code_pair


@pytest.fixture
def endpoint(registry, token_store) -> TokenEndpoint:
    return TokenEndpoint(registry, token_store)


def _error_of(callable_, *args, **kwargs) -> OAuth2Error:
    with pytest.raises(OAuth2Error) as excinfo:
        callable_(*args, **kwargs)
    return excinfo.value


def test_public_client_exchange(endpoint, token_store, public_client) -> None:
    code = token_store.create_authorization_code(public_client, "alice")

    result = endpoint.exchange(public_client.id, None, "authorization_code", code.code)

    assert result["token_type"] == "bearer"
    token = token_store.get_access_token(result["access_token"])
    assert token.user_id == "alice"
    assert token.client_id == public_client.id


def test_code_is_single_use(endpoint, token_store, public_client) -> None:
    code = token_store.create_authorization_code(public_client, "alice")
    endpoint.exchange(public_client.id, None, "authorization_code", code.code)

    error = _error_of(endpoint.exchange, public_client.id, None, "authorization_code", code.code)

    assert isinstance(error, AuthorizationCodeNotFoundError)
    assert error.code == "invalid_code"
    assert error.status_code == 404


@pytest.mark.parametrize("grant_type", [None, "", "password", "client_credentials"])
def test_unsupported_grant_type(endpoint, public_client, grant_type) -> None:
    error = _error_of(endpoint.exchange, public_client.id, None, grant_type, "whatever")

    assert (error.code, error.status_code) == ("unsupported_grant_type", 400)


def test_missing_client_id(endpoint) -> None:
    error = _error_of(endpoint.exchange, None, None, "authorization_code", "whatever")

    assert (error.code, error.status_code) == ("no_client_id", 401)


def test_unknown_client(endpoint) -> None:
    error = _error_of(endpoint.exchange, "unknown", None, "authorization_code", "whatever")

    assert (error.code, error.status_code) == ("invalid_client", 400)


def test_confidential_client_requires_secret(endpoint, token_store, private_client) -> None:
    code = token_store.create_authorization_code(private_client, "alice")

    error = _error_of(endpoint.exchange, private_client.id, None, "authorization_code", code.code)

    assert (error.code, error.status_code) == ("secret_required", 401)
    # The code was never touched.
    assert token_store.get_authorization_code(private_client, code.code)


def test_confidential_client_wrong_secret(endpoint, token_store, private_client) -> None:
    code = token_store.create_authorization_code(private_client, "alice")

    error = _error_of(endpoint.exchange, private_client.id, "wrong", "authorization_code", code.code)

    assert (error.code, error.status_code) == ("invalid_secret", 401)


def test_confidential_client_exchange(endpoint, token_store, private_client) -> None:
    code = token_store.create_authorization_code(private_client, "alice")

    result = endpoint.exchange(private_client.id, private_client.secret, "authorization_code", code.code)

    assert token_store.get_access_token(result["access_token"]).client_id == private_client.id


def test_code_from_other_client_rejected(endpoint, token_store, public_client, private_client) -> None:
    code = token_store.create_authorization_code(private_client, "alice")

    error = _error_of(endpoint.exchange, public_client.id, None, "authorization_code", code.code)

    assert error.code == "invalid_code"


def test_expired_code(endpoint, token_store, public_client, clock) -> None:
    code = token_store.create_authorization_code(public_client, "alice")
    clock.advance(601)

    error = _error_of(endpoint.exchange, public_client.id, None, "authorization_code", code.code)

    assert isinstance(error, ValidationError)
    assert (error.code, error.status_code) == ("expired_code", 400)
    assert token_store.delete_authorization_code(code) is False


def test_pkce_verifier_required(endpoint, token_store, public_client) -> None:
    _, challenge = generate_code_pair()
    code = token_store.create_authorization_code(
        public_client, "alice", PKCEChallenge(code_challenge=challenge, code_challenge_method="S256")
    )

    error = _error_of(endpoint.exchange, public_client.id, None, "authorization_code", code.code)

    assert (error.code, error.status_code) == ("missing_code_verifier", 400)
    assert token_store.delete_authorization_code(code) is False


def test_pkce_verifier_mismatch(endpoint, token_store, public_client) -> None:
    _, challenge = generate_code_pair()
    other_verifier, _ = generate_code_pair()
    code = token_store.create_authorization_code(
        public_client, "alice", PKCEChallenge(code_challenge=challenge, code_challenge_method="S256")
    )

    error = _error_of(
        endpoint.exchange, public_client.id, None, "authorization_code", code.code, other_verifier
    )

    assert error.code == "invalid_code_verifier"
    assert token_store.get_tokens_for_identity("alice") == []


def test_pkce_verifier_accepted(endpoint, token_store, public_client) -> None:
    verifier, challenge = generate_code_pair()
    code = token_store.create_authorization_code(
        public_client, "alice", PKCEChallenge(code_challenge=challenge, code_challenge_method="S256")
    )

    result = endpoint.exchange(public_client.id, None, "authorization_code", code.code, verifier)

    assert result["access_token"]


def test_identity_removed_before_exchange(endpoint, token_store, public_client, store) -> None:
    code = token_store.create_authorization_code(public_client, "alice")
    store.delete_item(partition_key="user#alice", sort_key="profile")

    error = _error_of(endpoint.exchange, public_client.id, None, "authorization_code", code.code)

    assert error.code == "invalid_identity"
