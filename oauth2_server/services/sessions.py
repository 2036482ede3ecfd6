"""Signed session cookies identifying the logged-in resource owner.

The login UI is an external collaborator: it authenticates the user and sets
the cookie produced by :meth:`SessionManager.issue`.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from oauth2_server.clients.identity_directory import IdentityDirectory
from oauth2_server.models.oauth import Principal, utcnow
from oauth2_server.services.signing import InvalidSignatureError, SignedPayloadEncoder

logger = logging.getLogger(__name__)


class SessionManager:
    def __init__(
        self,
        encoder: SignedPayloadEncoder,
        identities: IdentityDirectory,
        ttl_seconds: int,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._encoder = encoder
        self._identities = identities
        self._ttl = ttl_seconds
        self._clock = clock

    def issue(self, user_id: str) -> str:
        return self._encoder.encode(
            {"session": user_id, "issued_at": int(self._clock().timestamp())}
        )

    def read(self, cookie: Optional[str]) -> Optional[Principal]:
        """Return the principal for a session cookie, or None when absent or stale."""
        if not cookie:
            return None
        try:
            payload = self._encoder.decode(cookie)
        except InvalidSignatureError:
            logger.warning("Ignoring session cookie with an invalid signature")
            return None

        issued_at = payload.get("issued_at")
        if not isinstance(issued_at, int):
            return None
        if self._clock().timestamp() - issued_at > self._ttl:
            return None
        user_id = payload.get("session")
        if not isinstance(user_id, str):
            return None
        return self._identities.get(user_id)


__all__ = ["SessionManager"]
