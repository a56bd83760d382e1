"""Builds per-user provider clients that share flows and the token store."""

from __future__ import annotations

from typing import Optional

import httpx

from mockup_publisher.clients.authenticated import (
    EtsyAuthenticatedClient,
    GoogleAuthenticatedClient,
)
from mockup_publisher.clients.etsy import EtsyClient
from mockup_publisher.clients.google_drive import GoogleDriveClient
from mockup_publisher.clients.oauth import PkceAuthorizationFlow, SimpleAuthorizationFlow
from mockup_publisher.core.config import AppSettings
from mockup_publisher.services.token_store import TokenStore


class ProviderClientFactory:
    def __init__(
        self,
        *,
        settings: AppSettings,
        token_store: TokenStore,
        google_flow: SimpleAuthorizationFlow,
        etsy_flow: PkceAuthorizationFlow,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._token_store = token_store
        self._google_flow = google_flow
        self._etsy_flow = etsy_flow
        self._transport = transport

    def drive(self, user_id: str) -> GoogleDriveClient:
        api = GoogleAuthenticatedClient(
            user_id=user_id,
            token_store=self._token_store,
            flow=self._google_flow,
            timeout=self._settings.http_timeout_seconds,
            transport=self._transport,
        )
        return GoogleDriveClient(api, default_folder_id=self._settings.google.drive_folder_id)

    def etsy(self, user_id: str) -> EtsyClient:
        api = EtsyAuthenticatedClient(
            api_key=self._settings.etsy.api_key,
            user_id=user_id,
            token_store=self._token_store,
            flow=self._etsy_flow,
            timeout=self._settings.http_timeout_seconds,
            transport=self._transport,
        )
        return EtsyClient(api)


__all__ = ["ProviderClientFactory"]
