"""
Registry of OAuth 2 client applications.

Client records live in the record store under ``client#<id>`` with the
secret encrypted at rest. The personal access token client is never stored;
it is resolved from its reserved id.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from oauth2_server.clients.sqlite_store import ItemExistsError, SQLiteStore
from oauth2_server.core.config import OAuthSettings
from oauth2_server.core.errors import (
    ClientNotFoundError,
    ClientValidationError,
    PersonalClientError,
    StorageError,
)
from oauth2_server.models.oauth import (
    PERSONAL_CLIENT_ID,
    Client,
    ClientStatus,
    ClientType,
    get_personal_client,
    utcnow,
)
from oauth2_server.services.secret_cipher import SecretCipherService
from oauth2_server.services.token_store import TokenStore
from oauth2_server.utils.keys import generate_key
from oauth2_server.utils.uris import is_valid_redirect_uri

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = frozenset({"name", "description", "type", "redirect_uris", "force_pkce"})


def _partition(client_id: str) -> str:
    return f"client#{client_id}"


def _parse_type(value: Any) -> ClientType:
    if not value:
        raise ClientValidationError("Type is required.", code="missing_type")
    try:
        return ClientType(value)
    except ValueError as exc:
        raise ClientValidationError(
            "Type must be public or private.", code="invalid_type"
        ) from exc


def _validate_redirect_uris(uris: Optional[Iterable[str]]) -> List[str]:
    cleaned = [uri.strip() for uri in uris or [] if uri and uri.strip()]
    if not cleaned:
        raise ClientValidationError(
            "Client callback is required and must be a valid URL.",
            code="missing_callback",
        )
    for uri in cleaned:
        if not is_valid_redirect_uri(uri):
            raise ClientValidationError(
                f"Client callback {uri} is not a valid URL.",
                code="invalid_callback",
                data={"redirect_uri": uri},
            )
    return list(dict.fromkeys(cleaned))


def _require_text(value: Optional[str], field: str, message: str) -> str:
    if not value or not value.strip():
        raise ClientValidationError(message, code=f"missing_{field}")
    return value.strip()


class ClientRegistry:
    """Create, look up and administer registered clients."""

    def __init__(
        self,
        store: SQLiteStore,
        cipher: SecretCipherService,
        tokens: TokenStore,
        settings: OAuthSettings,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._cipher = cipher
        self._tokens = tokens
        self._settings = settings
        self._clock = clock

    def _to_record(self, client: Client) -> Dict[str, Any]:
        return {
            "pk": _partition(client.id),
            "sk": "profile",
            "id": client.id,
            "name": client.name,
            "description": client.description,
            "type": client.type.value,
            "secret_encrypted": self._cipher.encrypt(client.secret) if client.secret else None,
            "redirect_uris": list(client.redirect_uris),
            "status": client.status.value,
            "owner_id": client.owner_id,
            "force_pkce": client.force_pkce,
            "created_at": client.created_at.isoformat(),
            "updated_at": client.updated_at.isoformat(),
        }

    def _from_record(self, record: Dict[str, Any]) -> Client:
        encrypted = record.get("secret_encrypted")
        return Client(
            id=record["id"],
            name=record["name"],
            description=record.get("description", ""),
            type=ClientType(record["type"]),
            secret=self._cipher.decrypt(encrypted) if encrypted else None,
            redirect_uris=record.get("redirect_uris", []),
            status=ClientStatus(record.get("status", ClientStatus.DRAFT.value)),
            owner_id=record.get("owner_id"),
            force_pkce=record.get("force_pkce", False),
            created_at=datetime.fromisoformat(record["created_at"]),
            updated_at=datetime.fromisoformat(record["updated_at"]),
        )

    def _save(self, client: Client) -> Client:
        client.updated_at = self._clock()
        try:
            self._store.put_item(self._to_record(client))
        except StorageError as exc:
            raise StorageError("Could not save client.", code="could_not_save_client") from exc
        return client

    def _new_secret(self) -> str:
        return generate_key(self._settings.client_secret_length)

    @staticmethod
    def _ensure_not_personal(client: Client, action: str) -> None:
        if client.is_personal:
            raise PersonalClientError(f"Personal Access Tokens cannot be {action}.")

    def create(
        self,
        *,
        name: Optional[str],
        description: Optional[str],
        type: Any,
        redirect_uris: Optional[Iterable[str]],
        owner_id: Optional[str],
        force_pkce: bool = False,
    ) -> Client:
        """Register a new client in draft status."""
        client_type = _parse_type(type)
        now = self._clock()
        client = Client(
            id=generate_key(self._settings.client_id_length),
            name=_require_text(name, "name", "Client name is required"),
            description=_require_text(
                description, "description", "Client description is required"
            ),
            type=client_type,
            secret=self._new_secret() if client_type == ClientType.PRIVATE else None,
            redirect_uris=_validate_redirect_uris(redirect_uris),
            status=ClientStatus.DRAFT,
            owner_id=owner_id,
            force_pkce=bool(force_pkce),
            created_at=now,
            updated_at=now,
        )
        try:
            self._store.insert_item(self._to_record(client))
        except ItemExistsError as exc:
            raise StorageError(
                "Generated client ID collided with an existing client.",
                code="could_not_create_client",
            ) from exc
        except StorageError as exc:
            raise StorageError("Could not create client.", code="could_not_create_client") from exc

        logger.info("Registered %s client %s for owner %s", client_type.value, client.id, owner_id)
        return client

    def get_by_id(self, client_id: Optional[str]) -> Client:
        if not client_id:
            raise ClientNotFoundError("Missing client ID.", data={"client_id": client_id})
        if client_id == PERSONAL_CLIENT_ID:
            return get_personal_client()
        record = self._store.get_item(partition_key=_partition(client_id), sort_key="profile")
        if not record:
            raise ClientNotFoundError(
                f"Client ID {client_id} is invalid.", data={"client_id": client_id}
            )
        return self._from_record(record)

    def list_clients(self) -> List[Client]:
        records = self._store.scan_items(partition_key_prefix="client#", sort_key="profile")
        return [self._from_record(record) for record in records]

    def update(self, client: Client, fields: Dict[str, Any]) -> Client:
        """
        Apply editable ``fields`` and return the saved client.

        Changes are made on a copy, so a rejected update leaves ``client`` as it
        was. The id and secret are never touched here.
        """
        self._ensure_not_personal(client, "updated")
        unknown = set(fields) - _EDITABLE_FIELDS
        if unknown:
            raise ClientValidationError(
                f"Unsupported client fields: {', '.join(sorted(unknown))}.",
                code="invalid_fields",
            )

        updated = client.model_copy(deep=True)
        if "name" in fields:
            updated.name = _require_text(fields["name"], "name", "Client name is required")
        if "description" in fields:
            updated.description = _require_text(
                fields["description"], "description", "Client description is required"
            )
        if "redirect_uris" in fields:
            updated.redirect_uris = _validate_redirect_uris(fields["redirect_uris"])
        if "force_pkce" in fields:
            updated.force_pkce = bool(fields["force_pkce"])
        if "type" in fields:
            new_type = _parse_type(fields["type"])
            if new_type == ClientType.PRIVATE and not updated.secret:
                updated.secret = self._new_secret()
            elif new_type == ClientType.PUBLIC:
                updated.secret = None
            updated.type = new_type

        return self._save(updated)

    def regenerate_secret(self, client: Client) -> Client:
        self._ensure_not_personal(client, "given secrets")
        client.secret = self._new_secret()
        self._save(client)
        logger.info("Regenerated secret for client %s", client.id)
        return client

    def approve(self, client: Client) -> Client:
        """Publish a draft client; already published clients are returned unchanged."""
        self._ensure_not_personal(client, "approved")
        if client.status == ClientStatus.PUBLISHED:
            return client
        client.status = ClientStatus.PUBLISHED
        self._save(client)
        logger.info("Approved client %s", client.id)
        return client

    def delete(self, client: Client) -> bool:
        """Remove the client and its authorization codes."""
        if client.is_personal:
            return False
        if self._settings.revoke_tokens_on_client_delete:
            revoked = self._tokens.revoke_tokens_for_client(client.id)
            logger.info("Revoked %d tokens issued through client %s", revoked, client.id)
        self._tokens.delete_codes_for_client(client.id)
        deleted = self._store.delete_item(partition_key=_partition(client.id), sort_key="profile")
        if deleted:
            logger.info("Deleted client %s", client.id)
        return deleted

    @staticmethod
    def check_redirect_uri(client: Client, uri: str) -> bool:
        return client.check_redirect_uri(uri)


__all__ = ["ClientRegistry"]
