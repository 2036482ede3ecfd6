try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from oauth2_server.core.errors import (
    AuthorizationCodeNotFoundError,
    PersonalClientError,
    StorageError,
    TokenNotFoundError,
    ValidationError,
)
from oauth2_server.models.oauth import PKCEChallenge, get_personal_client


def test_authorization_code_shape(token_store, public_client, clock) -> None:
    code = token_store.create_authorization_code(public_client, "alice")

    assert len(code.code) == 12
    assert code.code.isalnum()
    assert (code.expires_at - code.issued_at).total_seconds() == 600
    assert code.issued_at == clock.now


def test_get_authorization_code_is_scoped_to_client(token_store, public_client, private_client) -> None:
    code = token_store.create_authorization_code(public_client, "alice")

    assert token_store.get_authorization_code(public_client, code.code).user_id == "alice"
    with pytest.raises(AuthorizationCodeNotFoundError):
        token_store.get_authorization_code(private_client, code.code)
    with pytest.raises(AuthorizationCodeNotFoundError):
        token_store.get_authorization_code(public_client, None)


def test_pkce_challenge_is_persisted(token_store, public_client) -> None:
    pkce = PKCEChallenge(code_challenge="a" * 43, code_challenge_method="S256")
    code = token_store.create_authorization_code(public_client, "alice", pkce)

    stored = token_store.get_authorization_code(public_client, code.code)

    assert stored.pkce == pkce


def test_redeem_is_single_use(token_store, public_client) -> None:
    code = token_store.create_authorization_code(public_client, "alice")

    assert token_store.redeem(code).user_id == "alice"
    with pytest.raises(AuthorizationCodeNotFoundError):
        token_store.redeem(code)
    with pytest.raises(AuthorizationCodeNotFoundError):
        token_store.get_authorization_code(public_client, code.code)


def test_redeem_expired_code_consumes_it(token_store, public_client, clock) -> None:
    code = token_store.create_authorization_code(public_client, "alice")
    clock.advance(601)

    with pytest.raises(ValidationError) as excinfo:
        token_store.redeem(code)

    assert excinfo.value.code == "expired_code"
    with pytest.raises(AuthorizationCodeNotFoundError):
        token_store.get_authorization_code(public_client, code.code)


def test_delete_authorization_code_is_idempotent(token_store, public_client) -> None:
    code = token_store.create_authorization_code(public_client, "alice")

    assert token_store.delete_authorization_code(code) is True
    assert token_store.delete_authorization_code(code) is False


def test_personal_client_cannot_mint_codes(token_store) -> None:
    with pytest.raises(PersonalClientError):
        token_store.create_authorization_code(get_personal_client(), "alice")


def test_create_access_token(token_store, public_client) -> None:
    token = token_store.create_access_token(public_client, "alice", meta={"note": "x"})

    assert len(token.key) == 32
    assert token.key.isalnum()
    fetched = token_store.get_access_token(token.key)
    assert fetched.user_id == "alice"
    assert fetched.client_id == public_client.id
    assert fetched.meta == {"note": "x"}


def test_create_access_token_requires_known_identity(token_store, public_client) -> None:
    with pytest.raises(ValidationError) as excinfo:
        token_store.create_access_token(public_client, "ghost")

    assert excinfo.value.code == "invalid_identity"


def test_token_key_collision_is_an_error(token_store, public_client, monkeypatch) -> None:
    from oauth2_server.services import token_store as token_store_module

    monkeypatch.setattr(token_store_module, "generate_key", lambda length: "A" * length)
    token_store.create_access_token(public_client, "alice")

    with pytest.raises(StorageError) as excinfo:
        token_store.create_access_token(public_client, "bob")

    assert excinfo.value.code == "could_not_create_token"
    assert token_store.get_access_token("A" * 32).user_id == "alice"
    assert token_store.get_tokens_for_identity("bob") == []


def test_get_access_token_unknown(token_store) -> None:
    with pytest.raises(TokenNotFoundError):
        token_store.get_access_token("nope")
    with pytest.raises(TokenNotFoundError):
        token_store.get_access_token("")


def test_tokens_indexed_by_identity_and_client(token_store, public_client, private_client, clock) -> None:
    first = token_store.create_access_token(public_client, "alice")
    clock.advance(1)
    second = token_store.create_access_token(private_client, "alice")
    token_store.create_access_token(public_client, "bob")

    assert [t.key for t in token_store.get_tokens_for_identity("alice")] == [first.key, second.key]
    assert len(token_store.get_tokens_for_client(public_client.id)) == 2


def test_revoke_removes_token_and_index_entries(token_store, public_client) -> None:
    token = token_store.create_access_token(public_client, "alice")

    assert token_store.revoke(token) is True
    assert token_store.revoke(token) is False
    assert token_store.get_tokens_for_identity("alice") == []
    assert token_store.get_tokens_for_client(public_client.id) == []
    with pytest.raises(TokenNotFoundError):
        token_store.get_access_token(token.key)


def test_revoke_tokens_for_client(token_store, public_client, private_client) -> None:
    token_store.create_access_token(public_client, "alice")
    token_store.create_access_token(public_client, "bob")
    kept = token_store.create_access_token(private_client, "alice")

    assert token_store.revoke_tokens_for_client(public_client.id) == 2
    assert [t.key for t in token_store.get_tokens_for_identity("alice")] == [kept.key]
