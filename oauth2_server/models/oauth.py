"""
Domain models for clients, authorization codes, access tokens and principals.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from oauth2_server.utils.uris import redirect_uri_matches

PERSONAL_CLIENT_ID = "__personal_access_token"
ADMIN_ROLE = "administrator"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ClientType(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class ClientStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


class CodeChallengeMethod(str, Enum):
    PLAIN = "plain"
    S256 = "S256"


class Principal(BaseModel):
    """A resource owner resolved from the identity directory."""

    id: str
    display_name: str = ""
    roles: List[str] = Field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in self.roles


class Client(BaseModel):
    """A registered application, or the personal access token client."""

    id: str
    name: str
    description: str = ""
    type: ClientType
    secret: Optional[str] = None
    redirect_uris: List[str] = Field(default_factory=list)
    status: ClientStatus = ClientStatus.DRAFT
    owner_id: Optional[str] = None
    force_pkce: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_personal(self) -> bool:
        return self.id == PERSONAL_CLIENT_ID

    @property
    def is_published(self) -> bool:
        return self.status == ClientStatus.PUBLISHED

    def requires_secret(self) -> bool:
        """Confidential clients must authenticate at the token endpoint."""
        return self.type == ClientType.PRIVATE

    def check_redirect_uri(self, uri: str) -> bool:
        if self.is_personal:
            return False
        return redirect_uri_matches(self.redirect_uris, uri)


@lru_cache()
def get_personal_client() -> Client:
    """Return the singleton client that owns personal access tokens."""
    return Client(
        id=PERSONAL_CLIENT_ID,
        name="Personal Access Token",
        description="Personal access token manually created by the user.",
        type=ClientType.PRIVATE,
        status=ClientStatus.PUBLISHED,
        created_at=datetime(1970, 1, 1, tzinfo=timezone.utc),
        updated_at=datetime(1970, 1, 1, tzinfo=timezone.utc),
    )


class PKCEChallenge(BaseModel):
    code_challenge: str
    code_challenge_method: CodeChallengeMethod = CodeChallengeMethod.PLAIN


class AuthorizationCode(BaseModel):
    """Short-lived, single-use code bound to a client and a resource owner."""

    code: str
    client_id: str
    user_id: str
    issued_at: datetime
    expires_at: datetime
    pkce: Optional[PKCEChallenge] = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


class AccessToken(BaseModel):
    """Opaque bearer credential resolving to one identity and one client."""

    key: str
    user_id: str
    client_id: str
    created_at: datetime = Field(default_factory=utcnow)
    meta: Dict[str, Any] = Field(default_factory=dict)


__all__ = [
    "ADMIN_ROLE",
    "AccessToken",
    "AuthorizationCode",
    "Client",
    "ClientStatus",
    "ClientType",
    "CodeChallengeMethod",
    "PERSONAL_CLIENT_ID",
    "PKCEChallenge",
    "Principal",
    "get_personal_client",
    "utcnow",
]
