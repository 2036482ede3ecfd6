"""Schemas for the token endpoint, authorization approval and profile tokens."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .clients import ClientSummary


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class ApprovalResponse(BaseModel):
    """Data the login UI needs to render the approval form.

    The form must be posted back to the same URL with ``_nonce`` and
    ``submit`` set to one of ``actions``.
    """

    status: str = "approval_required"
    client: ClientSummary
    user_id: str
    nonce: str
    actions: List[str]
    request: Dict[str, str] = Field(default_factory=dict)


class AccessTokenView(BaseModel):
    """A token as listed on its owner's profile."""

    key: str
    user_id: str
    client: Optional[ClientSummary] = Field(
        None, description="Null when the issuing client no longer exists."
    )
    created_at: datetime
    meta: Dict[str, Any] = Field(default_factory=dict)


class PersonalTokenRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Label to tell tokens apart.")


class PersonalTokenResponse(TokenResponse):
    token: AccessTokenView


class PrincipalResponse(BaseModel):
    id: str
    display_name: str = ""
    roles: List[str] = Field(default_factory=list)


__all__ = [
    "AccessTokenView",
    "ApprovalResponse",
    "PersonalTokenRequest",
    "PersonalTokenResponse",
    "PrincipalResponse",
    "TokenResponse",
]
