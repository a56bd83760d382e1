"""Symmetric encryption for provider credentials kept in the users table.

Keys are derived from configured secrets. Older secrets can stay configured
while credentials are re-encrypted under the current one.
"""

from __future__ import annotations

import base64
import hashlib
from typing import Iterable

from cryptography.fernet import Fernet, InvalidToken, MultiFernet


def _derive_key(secret: str) -> Fernet:
    return Fernet(base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest()))


class TokenCipherService:
    """Encrypt credential blobs under the current secret; decrypt under any known one."""

    def __init__(self, *, secret: str, previous_secrets: Iterable[str] = ()) -> None:
        if not secret:
            raise ValueError("Token encryption secret must be provided.")
        self._current = _derive_key(secret)
        retired = [_derive_key(value) for value in previous_secrets if value and value != secret]
        self._fernet = MultiFernet([self._current, *retired])

    def encrypt(self, plaintext: str) -> str:
        return self._current.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken as exc:
            raise ValueError(
                "Failed to decrypt stored credential; the encryption secret may have changed."
            ) from exc
        return plaintext.decode("utf-8")

    def needs_rotation(self, ciphertext: str) -> bool:
        """True when ``ciphertext`` is readable only under a retired secret."""
        try:
            self._current.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken:
            pass
        else:
            return False
        try:
            self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken:
            return False
        return True


__all__ = ["TokenCipherService"]
