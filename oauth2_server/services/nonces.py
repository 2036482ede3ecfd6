"""Anti-forgery nonces for the authorization approval form."""

from __future__ import annotations

import hmac
from datetime import datetime
from typing import Callable, Optional

from oauth2_server.models.oauth import utcnow
from oauth2_server.services.signing import InvalidSignatureError, SignedPayloadEncoder


class NonceService:
    """Issue and verify nonces bound to an action and a user."""

    def __init__(
        self,
        encoder: SignedPayloadEncoder,
        ttl_seconds: int,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._encoder = encoder
        self._ttl = ttl_seconds
        self._clock = clock

    def create(self, action: str, user_id: str) -> str:
        return self._encoder.encode(
            {
                "action": action,
                "user": user_id,
                "issued_at": int(self._clock().timestamp()),
            }
        )

    def verify(self, nonce: Optional[str], action: str, user_id: str) -> bool:
        if not nonce:
            return False
        try:
            payload = self._encoder.decode(nonce)
        except InvalidSignatureError:
            return False

        issued_at = payload.get("issued_at")
        if not isinstance(issued_at, int):
            return False
        age = self._clock().timestamp() - issued_at
        if age < 0 or age > self._ttl:
            return False
        return hmac.compare_digest(str(payload.get("action")), action) and hmac.compare_digest(
            str(payload.get("user")), user_id
        )


__all__ = ["NonceService"]
