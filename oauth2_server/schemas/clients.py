"""
Pydantic models for the client administration API.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from oauth2_server.models.oauth import Client, ClientStatus, ClientType


class ClientCreateRequest(BaseModel):
    """Registration payload; field validation happens in the registry."""

    name: Optional[str] = Field(None, description="Display name shown on the approval form.")
    description: Optional[str] = Field(None)
    type: Optional[str] = Field(None, description="Either public or private.")
    redirect_uris: List[str] = Field(default_factory=list)
    force_pkce: bool = Field(False, description="Reject authorization requests without PKCE.")


class ClientUpdateRequest(BaseModel):
    """Partial update; only fields present in the body are applied."""

    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    redirect_uris: Optional[List[str]] = None
    force_pkce: Optional[bool] = None


class ClientSummary(BaseModel):
    id: str
    name: str
    description: str = ""


class ClientResponse(BaseModel):
    """Client as returned to its owner or an administrator."""

    id: str
    name: str
    description: str
    type: ClientType
    status: ClientStatus
    redirect_uris: List[str]
    owner_id: Optional[str] = None
    force_pkce: bool = False
    secret: Optional[str] = Field(
        None, description="Only present for confidential clients."
    )
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_client(cls, client: Client) -> "ClientResponse":
        return cls(
            id=client.id,
            name=client.name,
            description=client.description,
            type=client.type,
            status=client.status,
            redirect_uris=list(client.redirect_uris),
            owner_id=client.owner_id,
            force_pkce=client.force_pkce,
            secret=client.secret,
            created_at=client.created_at,
            updated_at=client.updated_at,
        )


__all__ = [
    "ClientCreateRequest",
    "ClientResponse",
    "ClientSummary",
    "ClientUpdateRequest",
]
