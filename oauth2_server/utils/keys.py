"""Random credential generation."""

from __future__ import annotations

import secrets
import string

_ALPHABET = string.ascii_letters + string.digits


def generate_key(length: int) -> str:
    """Return a random alphanumeric string drawn from the system CSPRNG."""
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


__all__ = ["generate_key"]
