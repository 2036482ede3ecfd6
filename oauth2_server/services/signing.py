"""HMAC signing of small JSON payloads (nonces, session cookies)."""

from __future__ import annotations

import base64
import binascii
import hmac
import json
from hashlib import sha256
from typing import Any, Dict


class InvalidSignatureError(ValueError):
    """Raised when a signed payload was tampered with or is malformed."""


class SignedPayloadEncoder:
    """Encode and decode payloads to guard against tampering."""

    def __init__(self, secret_key: str) -> None:
        self._secret_key = secret_key.encode("utf-8")

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        signature = hmac.new(self._secret_key, serialized.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized.encode("utf-8")).decode("utf-8")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise InvalidSignatureError("Malformed signed payload.") from exc
        signature, serialized = decoded[:32], decoded[32:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            raise InvalidSignatureError("Invalid payload signature.")
        try:
            payload = json.loads(serialized)
        except ValueError as exc:
            raise InvalidSignatureError("Malformed signed payload.") from exc
        if not isinstance(payload, dict):
            raise InvalidSignatureError("Malformed signed payload.")
        return payload


__all__ = ["InvalidSignatureError", "SignedPayloadEncoder"]
