"""Proof Key for Code Exchange (RFC 7636) helpers."""

from __future__ import annotations

import base64
import hashlib
import hmac
import re
import secrets
from typing import Optional, Tuple

from oauth2_server.core.errors import PKCEError
from oauth2_server.models.oauth import CodeChallengeMethod, PKCEChallenge

MIN_LENGTH = 43
MAX_LENGTH = 128

_CHALLENGE_PATTERN = re.compile(r"^[A-Za-z0-9.\-_~]+$")
_VERIFIER_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-._~"


def parse_method(raw: Optional[str]) -> CodeChallengeMethod:
    """Resolve a method name case-insensitively; absent means plain."""
    if not raw:
        return CodeChallengeMethod.PLAIN
    for method in CodeChallengeMethod:
        if method.value.lower() == raw.lower():
            return method
    raise PKCEError(
        "Code challenge method must be one of plain or S256.",
        code="invalid_code_challenge_method",
    )


def validate_challenge(
    code_challenge: Optional[str], code_challenge_method: Optional[str] = None
) -> PKCEChallenge:
    """Validate the challenge parameters of an authorization request."""
    if not code_challenge:
        raise PKCEError("Missing code_challenge parameter.", code="missing_code_challenge")
    if not MIN_LENGTH <= len(code_challenge) <= MAX_LENGTH:
        raise PKCEError(
            f"Code challenge must be between {MIN_LENGTH} and {MAX_LENGTH} characters.",
            code="invalid_code_challenge_length",
        )
    if not _CHALLENGE_PATTERN.match(code_challenge):
        raise PKCEError(
            "Code challenge contains invalid characters.",
            code="invalid_code_challenge_characters",
        )
    return PKCEChallenge(
        code_challenge=code_challenge,
        code_challenge_method=parse_method(code_challenge_method),
    )


def s256_challenge(code_verifier: str) -> str:
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def verify_code_verifier(challenge: PKCEChallenge, code_verifier: str) -> bool:
    """Check a token-request verifier against the stored challenge."""
    if not code_verifier or not MIN_LENGTH <= len(code_verifier) <= MAX_LENGTH:
        return False
    if not _CHALLENGE_PATTERN.match(code_verifier):
        return False
    if challenge.code_challenge_method == CodeChallengeMethod.S256:
        computed = s256_challenge(code_verifier)
    else:
        computed = code_verifier
    return hmac.compare_digest(computed, challenge.code_challenge)


def generate_code_pair(length: int = 64) -> Tuple[str, str]:
    """Return a fresh ``(code_verifier, S256 code_challenge)`` pair for testing clients."""
    if not MIN_LENGTH <= length <= MAX_LENGTH:
        raise ValueError(f"Length should be >= {MIN_LENGTH} and <= {MAX_LENGTH}.")
    verifier = "".join(secrets.choice(_VERIFIER_ALPHABET) for _ in range(length))
    return verifier, s256_challenge(verifier)


__all__ = [
    "MAX_LENGTH",
    "MIN_LENGTH",
    "generate_code_pair",
    "parse_method",
    "s256_challenge",
    "verify_code_verifier",
    "validate_challenge",
]
