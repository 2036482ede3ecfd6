"""
Persistence of authorization codes and access tokens.

Record layout in the key-value store:

* ``codes#<client_id>`` / ``code#<code>``            authorization code
* ``token#<key>`` / ``record``                       access token
* ``user#<user_id>`` / ``token#<key>``               index by owner
* ``client-tokens#<client_id>`` / ``token#<key>``    index by issuing client

A token and its two index entries are written and removed together.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from oauth2_server.clients.identity_directory import IdentityDirectory
from oauth2_server.clients.sqlite_store import ItemExistsError, SQLiteStore
from oauth2_server.core.config import OAuthSettings
from oauth2_server.core.errors import (
    AuthorizationCodeNotFoundError,
    PersonalClientError,
    StorageError,
    TokenNotFoundError,
    ValidationError,
)
from oauth2_server.models.oauth import (
    AccessToken,
    AuthorizationCode,
    Client,
    PKCEChallenge,
    utcnow,
)
from oauth2_server.utils.keys import generate_key

logger = logging.getLogger(__name__)


def _code_key(client_id: str, code: str) -> tuple[str, str]:
    return f"codes#{client_id}", f"code#{code}"


def _token_key(key: str) -> tuple[str, str]:
    return f"token#{key}", "record"


def _user_index_key(user_id: str, key: str) -> tuple[str, str]:
    return f"user#{user_id}", f"token#{key}"


def _client_index_key(client_id: str, key: str) -> tuple[str, str]:
    return f"client-tokens#{client_id}", f"token#{key}"


def _code_from_record(record: Dict[str, Any]) -> AuthorizationCode:
    pkce = None
    if record.get("code_challenge"):
        pkce = PKCEChallenge(
            code_challenge=record["code_challenge"],
            code_challenge_method=record.get("code_challenge_method") or "plain",
        )
    return AuthorizationCode(
        code=record["code"],
        client_id=record["client_id"],
        user_id=record["user_id"],
        issued_at=datetime.fromisoformat(record["issued_at"]),
        expires_at=datetime.fromisoformat(record["expires_at"]),
        pkce=pkce,
    )


def _token_from_record(record: Dict[str, Any]) -> AccessToken:
    return AccessToken(
        key=record["key"],
        user_id=record["user_id"],
        client_id=record["client_id"],
        created_at=datetime.fromisoformat(record["created_at"]),
        meta=record.get("meta") or {},
    )


class TokenStore:
    """Owns authorization codes and access tokens."""

    def __init__(
        self,
        store: SQLiteStore,
        identities: IdentityDirectory,
        settings: OAuthSettings,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._identities = identities
        self._settings = settings
        self._clock = clock

    # Authorization codes

    def create_authorization_code(
        self, client: Client, user_id: str, pkce: Optional[PKCEChallenge] = None
    ) -> AuthorizationCode:
        if client.is_personal:
            raise PersonalClientError(
                "Personal Access Tokens do not support authorization codes.",
                code="personal_client_no_auth_code",
            )
        now = self._clock()
        auth_code = AuthorizationCode(
            code=generate_key(self._settings.auth_code_length),
            client_id=client.id,
            user_id=user_id,
            issued_at=now,
            expires_at=now + timedelta(seconds=self._settings.auth_code_ttl_seconds),
            pkce=pkce,
        )
        pk, sk = _code_key(client.id, auth_code.code)
        record = {
            "pk": pk,
            "sk": sk,
            "code": auth_code.code,
            "client_id": client.id,
            "user_id": user_id,
            "issued_at": auth_code.issued_at.isoformat(),
            "expires_at": auth_code.expires_at.isoformat(),
            "code_challenge": pkce.code_challenge if pkce else None,
            "code_challenge_method": pkce.code_challenge_method.value if pkce else None,
        }
        try:
            self._store.insert_item(record)
        except StorageError as exc:
            raise StorageError(
                "Unable to create authorization code.", code="could_not_create_code"
            ) from exc
        return auth_code

    def get_authorization_code(self, client: Client, code: Optional[str]) -> AuthorizationCode:
        if client.is_personal:
            raise PersonalClientError(
                "Personal Access Tokens do not support authorization codes.",
                code="personal_client_no_auth_code",
            )
        record = None
        if code:
            pk, sk = _code_key(client.id, code)
            record = self._store.get_item(partition_key=pk, sort_key=sk)
        if not record:
            raise AuthorizationCodeNotFoundError(data={"client": client.id})
        return _code_from_record(record)

    def redeem(self, auth_code: AuthorizationCode) -> AuthorizationCode:
        """Consume a code, returning its stored data if it is still valid.

        The code is removed from the store before validation, so it can never
        be presented twice whatever the outcome.
        """
        pk, sk = _code_key(auth_code.client_id, auth_code.code)
        record = self._store.pop_item(partition_key=pk, sort_key=sk)
        if not record:
            raise AuthorizationCodeNotFoundError(data={"client": auth_code.client_id})

        consumed = _code_from_record(record)
        now = self._clock()
        if consumed.is_expired(now):
            logger.info("Rejected expired authorization code for client %s", consumed.client_id)
            raise ValidationError(
                "Authorization code has expired.",
                code="expired_code",
                data={"expiration": consumed.expires_at.isoformat(), "time": now.isoformat()},
            )
        return consumed

    def delete_authorization_code(self, auth_code: AuthorizationCode) -> bool:
        pk, sk = _code_key(auth_code.client_id, auth_code.code)
        return self._store.delete_item(partition_key=pk, sort_key=sk)

    def delete_codes_for_client(self, client_id: str) -> int:
        return self._store.delete_partition(partition_key=f"codes#{client_id}")

    # Access tokens

    def create_access_token(
        self, client: Client, user_id: str, meta: Optional[Dict[str, Any]] = None
    ) -> AccessToken:
        if self._identities.get(user_id) is None:
            raise ValidationError(
                "Invalid user to create token for.", code="invalid_identity"
            )

        token = AccessToken(
            key=generate_key(self._settings.token_key_length),
            user_id=user_id,
            client_id=client.id,
            created_at=self._clock(),
            meta=dict(meta or {}),
        )
        token_pk, token_sk = _token_key(token.key)
        user_pk, user_sk = _user_index_key(user_id, token.key)
        client_pk, client_sk = _client_index_key(client.id, token.key)
        try:
            self._store.transact(
                inserts=[
                    {
                        "pk": token_pk,
                        "sk": token_sk,
                        "key": token.key,
                        "user_id": user_id,
                        "client_id": client.id,
                        "created_at": token.created_at.isoformat(),
                        "meta": token.meta,
                    },
                    {"pk": user_pk, "sk": user_sk, "key": token.key, "client_id": client.id},
                    {"pk": client_pk, "sk": client_sk, "key": token.key, "user_id": user_id},
                ]
            )
        except ItemExistsError as exc:
            logger.error("Access token key collision for client %s", client.id)
            raise StorageError(
                "Unable to create token.", code="could_not_create_token"
            ) from exc
        except StorageError as exc:
            raise StorageError(
                "Unable to create token.", code="could_not_create_token"
            ) from exc

        logger.info("Issued access token for user %s through client %s", user_id, client.id)
        return token

    def get_access_token(self, key: Optional[str]) -> AccessToken:
        record = None
        if key:
            pk, sk = _token_key(key)
            record = self._store.get_item(partition_key=pk, sort_key=sk)
        if not record:
            raise TokenNotFoundError()
        return _token_from_record(record)

    def _resolve_index(self, entries: List[Dict[str, Any]]) -> List[AccessToken]:
        tokens: List[AccessToken] = []
        for entry in entries:
            pk, sk = _token_key(entry["key"])
            record = self._store.get_item(partition_key=pk, sort_key=sk)
            if record:
                tokens.append(_token_from_record(record))
        tokens.sort(key=lambda token: token.created_at)
        return tokens

    def get_tokens_for_identity(self, user_id: str) -> List[AccessToken]:
        entries = self._store.list_items_with_prefix(
            partition_key=f"user#{user_id}", sort_key_prefix="token#"
        )
        return self._resolve_index(entries)

    def get_tokens_for_client(self, client_id: str) -> List[AccessToken]:
        entries = self._store.list_items_with_prefix(
            partition_key=f"client-tokens#{client_id}", sort_key_prefix="token#"
        )
        return self._resolve_index(entries)

    def revoke(self, token: AccessToken) -> bool:
        """Delete a token and its index entries.

        Callers are responsible for checking the caller may revoke it.
        """
        token_pk, token_sk = _token_key(token.key)
        existed = self._store.pop_item(partition_key=token_pk, sort_key=token_sk) is not None
        self._store.transact(
            deletes=[
                _user_index_key(token.user_id, token.key),
                _client_index_key(token.client_id, token.key),
            ]
        )
        if existed:
            logger.info("Revoked access token for user %s", token.user_id)
        return existed

    def revoke_tokens_for_client(self, client_id: str) -> int:
        return sum(1 for token in self.get_tokens_for_client(client_id) if self.revoke(token))


__all__ = ["TokenStore"]
