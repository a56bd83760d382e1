"""
Sign-in with Google and Etsy shop connection on top of the OAuth flows.
"""

from __future__ import annotations

import logging
from typing import Optional

from mockup_publisher.clients.factory import ProviderClientFactory
from mockup_publisher.clients.oauth import (
    AuthorizationRequest,
    PkceAuthorizationFlow,
    SimpleAuthorizationFlow,
)
from mockup_publisher.clients.sqlite_store import SQLiteStore
from mockup_publisher.core.errors import ProviderRequestFailed, ResourceNotFound
from mockup_publisher.models.listing import User
from mockup_publisher.models.oauth import Provider
from mockup_publisher.services.token_store import TokenStore

logger = logging.getLogger(__name__)


class AccountService:
    """Creates users from Google sign-in and records their Etsy connection."""

    def __init__(
        self,
        *,
        store: SQLiteStore,
        token_store: TokenStore,
        google_flow: SimpleAuthorizationFlow,
        etsy_flow: PkceAuthorizationFlow,
        clients: ProviderClientFactory,
    ) -> None:
        self._store = store
        self._tokens = token_store
        self._google_flow = google_flow
        self._etsy_flow = etsy_flow
        self._clients = clients

    def google_authorization_url(self) -> str:
        return self._google_flow.get_auth_url()

    async def complete_google_login(self, code: str) -> User:
        """Exchange the code, resolve the account email and persist the credential."""
        credential = await self._google_flow.exchange_code(code)
        email = await self._google_flow.fetch_user_email(credential)

        self._store.upsert_user(email)
        if not credential.refresh_token:
            previous = self._tokens.find(email, Provider.GOOGLE)
            if previous is not None and previous.refresh_token:
                credential = credential.model_copy(
                    update={"refresh_token": previous.refresh_token}
                )
        self._tokens.save(email, Provider.GOOGLE, credential)
        logger.info("Google sign-in completed for %s", email)
        return self.get_user(email)

    def begin_etsy_connect(self, email: str) -> AuthorizationRequest:
        return self._etsy_flow.begin_auth(email)

    async def complete_etsy_connect(self, code: str, state_token: str) -> User:
        """Finish PKCE, store the Etsy credential and remember the user's shop."""
        credential, owner = await self._etsy_flow.complete_auth(code, state_token)
        self._store.upsert_user(owner)
        self._tokens.save(owner, Provider.ETSY, credential)

        shop_id: Optional[str] = None
        try:
            shops = await self._clients.etsy(owner).list_shops()
        except ProviderRequestFailed as exc:
            logger.warning("Could not look up Etsy shop for %s: %s", owner, exc)
            shops = []
        if shops and shops[0].get("shop_id"):
            shop_id = str(shops[0]["shop_id"])
        self._store.set_etsy_shop_id(owner, shop_id)
        logger.info("Etsy connected for %s (shop=%s)", owner, shop_id)
        return self.get_user(owner)

    def get_user(self, email: str) -> User:
        row = self._store.get_user(email)
        if row is None:
            raise ResourceNotFound(f"User {email} not found.")
        return User(
            email=row["email"],
            google_connected=self._tokens.is_connected(email, Provider.GOOGLE),
            etsy_connected=self._tokens.is_connected(email, Provider.ETSY),
            etsy_shop_id=row.get("etsy_shop_id"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


__all__ = ["AccountService"]
