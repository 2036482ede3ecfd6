try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import logging

import pytest

from oauth2_server.core.errors import InvalidTokenError
from oauth2_server.models.oauth import get_personal_client
from oauth2_server.services import AuthenticationContext, BearerAuthenticator


@pytest.fixture
def authenticator(token_store, registry, identities) -> BearerAuthenticator:
    return BearerAuthenticator(token_store, registry, identities)


@pytest.fixture
def alice_token(token_store, public_client):
    return token_store.create_access_token(public_client, "alice")


def test_no_token_means_no_opinion(authenticator) -> None:
    assert authenticator.authenticate({}, {}, AuthenticationContext()) is None
    assert authenticator.authenticate({"Authorization": "Basic abc"}, {}, AuthenticationContext()) is None


def test_header_token_resolves_principal(authenticator, alice_token) -> None:
    context = AuthenticationContext()

    principal = authenticator.authenticate(
        {"authorization": f"Bearer {alice_token.key}"}, {}, context
    )

    assert principal.id == "alice"
    assert context.token.key == alice_token.key
    assert context.querying_token is False


def test_header_name_is_case_insensitive(authenticator, alice_token) -> None:
    principal = authenticator.authenticate(
        {"AUTHORIZATION": f"Bearer {alice_token.key}"}, {}, AuthenticationContext()
    )

    assert principal.id == "alice"


def test_query_token_is_discouraged_but_accepted(authenticator, alice_token, caplog) -> None:
    with caplog.at_level(logging.WARNING):
        principal = authenticator.authenticate(
            {}, {"access_token": alice_token.key}, AuthenticationContext()
        )

    assert principal.id == "alice"
    assert "query string" in caplog.text
    assert alice_token.key not in caplog.text


def test_bearer_scheme_is_case_insensitive(authenticator, alice_token) -> None:
    principal = authenticator.authenticate(
        {"Authorization": f"bearer {alice_token.key}"}, {}, AuthenticationContext()
    )

    assert principal.id == "alice"


@pytest.mark.parametrize("header", ["Bearer", "Bearer abc def", "BEARER a@b"])
def test_unparsable_bearer_header_rejected(authenticator, header) -> None:
    with pytest.raises(InvalidTokenError):
        authenticator.authenticate({"Authorization": header}, {}, AuthenticationContext())


def test_header_wins_over_query(authenticator, token_store, public_client, alice_token) -> None:
    bob_token = token_store.create_access_token(public_client, "bob")

    principal = authenticator.authenticate(
        {"Authorization": f"Bearer {bob_token.key}"},
        {"access_token": alice_token.key},
        AuthenticationContext(),
    )

    assert principal.id == "bob"


def test_query_token_can_be_disabled(token_store, registry, identities, alice_token) -> None:
    authenticator = BearerAuthenticator(token_store, registry, identities, allow_query_token=False)

    assert authenticator.authenticate({}, {"access_token": alice_token.key}, AuthenticationContext()) is None


def test_empty_query_token_means_no_opinion(authenticator) -> None:
    assert authenticator.authenticate({}, {"access_token": ""}, AuthenticationContext()) is None


@pytest.mark.parametrize("value", [["a", "b"], 42])
def test_malformed_query_token_rejected(authenticator, value) -> None:
    with pytest.raises(InvalidTokenError):
        authenticator.authenticate({}, {"access_token": value}, AuthenticationContext())


def test_unknown_token_rejected(authenticator) -> None:
    with pytest.raises(InvalidTokenError):
        authenticator.authenticate({"Authorization": "Bearer doesnotexist"}, {}, AuthenticationContext())


def test_token_for_deleted_client_rejected(authenticator, registry, public_client, alice_token) -> None:
    registry.delete(public_client)

    with pytest.raises(InvalidTokenError):
        authenticator.authenticate({"Authorization": f"Bearer {alice_token.key}"}, {}, AuthenticationContext())


def test_token_for_draft_client_rejected(authenticator, registry, token_store) -> None:
    draft = registry.create(
        name="Draft",
        description="Not yet approved",
        type="public",
        redirect_uris=["https://draft.example/cb"],
        owner_id="alice",
    )
    token = token_store.create_access_token(draft, "alice")

    with pytest.raises(InvalidTokenError):
        authenticator.authenticate({"Authorization": f"Bearer {token.key}"}, {}, AuthenticationContext())

    registry.approve(draft)
    principal = authenticator.authenticate(
        {"Authorization": f"Bearer {token.key}"}, {}, AuthenticationContext()
    )
    assert principal.id == "alice"


def test_token_for_deleted_identity_rejected(authenticator, store, alice_token) -> None:
    store.delete_item(partition_key="user#alice", sort_key="profile")

    with pytest.raises(InvalidTokenError):
        authenticator.authenticate({"Authorization": f"Bearer {alice_token.key}"}, {}, AuthenticationContext())


def test_personal_tokens_authenticate(authenticator, token_store) -> None:
    token = token_store.create_access_token(get_personal_client(), "bob", meta={"name": "cli"})

    principal = authenticator.authenticate(
        {"Authorization": f"Bearer {token.key}"}, {}, AuthenticationContext()
    )

    assert principal.id == "bob"


def test_reentrant_lookup_has_no_opinion(authenticator, alice_token) -> None:
    context = AuthenticationContext(querying_token=True)

    assert authenticator.authenticate(
        {"Authorization": f"Bearer {alice_token.key}"}, {}, context
    ) is None


def test_guard_reset_after_failure(authenticator) -> None:
    context = AuthenticationContext()

    with pytest.raises(InvalidTokenError):
        authenticator.authenticate({"Authorization": "Bearer missing"}, {}, context)

    assert context.querying_token is False
