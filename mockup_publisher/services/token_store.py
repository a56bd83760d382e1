"""
Persistence of per-user, per-provider OAuth credentials.
"""

from __future__ import annotations

import logging

from mockup_publisher.clients.sqlite_store import SQLiteStore
from mockup_publisher.core.errors import AuthExpired, ProviderNotConnected
from mockup_publisher.models.oauth import Provider, ProviderCredential
from mockup_publisher.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)


class TokenStore:
    """Reads and writes encrypted credentials on the user record.

    A credential is replaced wholesale on every save; invalidation flags the
    stored credential instead of deleting it.
    """

    def __init__(self, store: SQLiteStore, token_cipher: TokenCipherService) -> None:
        self._store = store
        self._cipher = token_cipher

    def _load(self, user_id: str, provider: Provider) -> ProviderCredential | None:
        blob = self._store.get_provider_tokens(user_id, provider.value)
        if not blob:
            return None
        try:
            plaintext = self._cipher.decrypt(blob)
        except ValueError:
            logger.warning("Stored %s credential for %s is unreadable", provider.value, user_id)
            return None
        if self._cipher.needs_rotation(blob):
            self._store.set_provider_tokens(
                user_id, provider.value, self._cipher.encrypt(plaintext)
            )
            logger.info("Re-encrypted %s credential for %s", provider.value, user_id)
        return ProviderCredential.model_validate_json(plaintext)

    def get(self, user_id: str, provider: Provider) -> ProviderCredential:
        """Return the usable credential or raise when re-authorization is needed."""
        credential = self._load(user_id, provider)
        if credential is None:
            raise ProviderNotConnected(
                f"{provider.value} account is not connected.",
                provider=provider.value,
            )
        if credential.invalidated:
            raise AuthExpired(
                f"{provider.value} authorization expired; reconnect the account.",
                provider=provider.value,
            )
        return credential

    def find(self, user_id: str, provider: Provider) -> ProviderCredential | None:
        """Return the stored credential, usable or not, without raising."""
        return self._load(user_id, provider)

    def save(self, user_id: str, provider: Provider, credential: ProviderCredential) -> None:
        self._store.set_provider_tokens(
            user_id,
            provider.value,
            self._cipher.encrypt(credential.model_dump_json()),
        )

    def invalidate(self, user_id: str, provider: Provider) -> None:
        credential = self._load(user_id, provider)
        if credential is None or credential.invalidated:
            return
        self.save(user_id, provider, credential.model_copy(update={"invalidated": True}))
        logger.warning("Invalidated %s credential for %s", provider.value, user_id)

    def is_connected(self, user_id: str, provider: Provider) -> bool:
        credential = self._load(user_id, provider)
        return credential is not None and not credential.invalidated


__all__ = ["TokenStore"]
