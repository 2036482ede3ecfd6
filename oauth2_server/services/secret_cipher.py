"""Symmetric encryption for client secrets kept in the record store."""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from oauth2_server.core.errors import StorageError


class SecretDecryptionError(StorageError):
    code = "corrupt_secret"
    message = "Stored client secret could not be decrypted."


class SecretCipherService:
    """Encrypt and decrypt client secrets using a Fernet key derived from config."""

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("Secret encryption key must be provided.")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(digest))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken as exc:
            raise SecretDecryptionError() from exc
        return plaintext.decode("utf-8")


__all__ = ["SecretCipherService", "SecretDecryptionError"]
