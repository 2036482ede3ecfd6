"""Identity directory resolving opaque user ids to principals."""

from __future__ import annotations

from typing import Optional, Protocol

from oauth2_server.clients.sqlite_store import SQLiteStore
from oauth2_server.models.oauth import Principal


class IdentityDirectory(Protocol):
    def get(self, user_id: str) -> Optional[Principal]:
        ...


class SQLiteIdentityDirectory:
    """Principals stored alongside protocol records, one item per user."""

    def __init__(self, store: SQLiteStore) -> None:
        self._store = store

    @staticmethod
    def _partition(user_id: str) -> str:
        return f"user#{user_id}"

    def get(self, user_id: str) -> Optional[Principal]:
        if not user_id:
            return None
        record = self._store.get_item(
            partition_key=self._partition(user_id), sort_key="profile"
        )
        if not record:
            return None
        return Principal(
            id=record["user_id"],
            display_name=record.get("display_name", ""),
            roles=record.get("roles", []),
        )

    def put(self, principal: Principal) -> None:
        self._store.put_item(
            {
                "pk": self._partition(principal.id),
                "sk": "profile",
                "user_id": principal.id,
                "display_name": principal.display_name,
                "roles": list(principal.roles),
            }
        )


__all__ = ["IdentityDirectory", "SQLiteIdentityDirectory"]
