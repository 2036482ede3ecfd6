"""Access control decisions for administrative operations."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Protocol

from oauth2_server.core.errors import PermissionDeniedError
from oauth2_server.models.oauth import AccessToken, Client, Principal

DEVELOPER_ROLE = "developer"


class Action(str, Enum):
    CREATE_CLIENT = "clients.create"
    LIST_CLIENTS = "clients.list"
    VIEW_CLIENT = "clients.view"
    EDIT_CLIENT = "clients.edit"
    DELETE_CLIENT = "clients.delete"
    APPROVE_CLIENT = "clients.approve"
    LIST_TOKENS = "tokens.list"
    CREATE_TOKEN = "tokens.create"
    REVOKE_TOKEN = "tokens.revoke"


class Policy(Protocol):
    def can(self, principal: Optional[Principal], action: Action, resource: Any = None) -> bool:
        ...


class RolePolicy:
    """Administrators may do anything; everyone else is limited to what they own.

    Token actions take the owning user id (or an ``AccessToken``) as the
    resource; client actions take a ``Client``.
    """

    def can(self, principal: Optional[Principal], action: Action, resource: Any = None) -> bool:
        if principal is None:
            return False
        if principal.is_admin:
            return True

        if action == Action.CREATE_CLIENT:
            return DEVELOPER_ROLE in principal.roles
        if action == Action.LIST_CLIENTS:
            return DEVELOPER_ROLE in principal.roles
        if action in (Action.VIEW_CLIENT, Action.EDIT_CLIENT, Action.DELETE_CLIENT):
            return isinstance(resource, Client) and resource.owner_id == principal.id
        if action in (Action.LIST_TOKENS, Action.CREATE_TOKEN, Action.REVOKE_TOKEN):
            owner = resource.user_id if isinstance(resource, AccessToken) else resource
            return owner == principal.id
        return False


def ensure_can(policy: Policy, principal: Optional[Principal], action: Action, resource: Any = None) -> None:
    if not policy.can(principal, action, resource):
        raise PermissionDeniedError(data={"action": action.value})


__all__ = ["Action", "DEVELOPER_ROLE", "Policy", "RolePolicy", "ensure_can"]
