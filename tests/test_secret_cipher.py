try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from oauth2_server.core.errors import StorageError
from oauth2_server.services.secret_cipher import SecretCipherService, SecretDecryptionError


def test_secret_cipher_hides_plaintext() -> None:
    cipher = SecretCipherService(secret="super-secret-key")
    plaintext = "client-secret-value"

    encrypted = cipher.encrypt(plaintext)
    assert plaintext not in encrypted
    assert cipher.decrypt(encrypted) == plaintext


def test_secret_cipher_rejects_foreign_ciphertext() -> None:
    encrypted = SecretCipherService(secret="one-key").encrypt("value")
    cipher = SecretCipherService(secret="another-key")

    with pytest.raises(SecretDecryptionError):
        cipher.decrypt(encrypted)
    with pytest.raises(StorageError):
        cipher.decrypt("not-valid")


def test_secret_cipher_requires_key() -> None:
    with pytest.raises(ValueError):
        SecretCipherService(secret="")
