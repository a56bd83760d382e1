"""
Bearer-authenticated access to provider APIs with a single refresh-and-retry.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from mockup_publisher.clients.oauth import AuthorizationFlow
from mockup_publisher.core.errors import (
    AuthExpired,
    ProviderRequestFailed,
    ProviderUnreachable,
    TokenExchangeFailed,
)
from mockup_publisher.models.oauth import Provider, ProviderCredential
from mockup_publisher.services.token_store import TokenStore

logger = logging.getLogger(__name__)


class AuthenticatedClient:
    """Issue requests on behalf of one user against one provider.

    A 401 response triggers exactly one refresh followed by exactly one retry of
    the original request. The refreshed credential is persisted before the
    retry is sent. A second 401, or a refresh the provider rejects, invalidates
    the stored credential and raises ``AuthExpired``. Every other non-2xx
    response raises ``ProviderRequestFailed`` without retrying.
    """

    provider: Provider
    base_url: str = ""

    def __init__(
        self,
        *,
        user_id: str,
        token_store: TokenStore,
        flow: AuthorizationFlow,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.user_id = user_id
        self._token_store = token_store
        self._flow = flow
        self._timeout = timeout
        self._transport = transport
        self._refresh_lock = asyncio.Lock()

    def static_headers(self) -> Dict[str, str]:
        """Headers sent with every request besides the bearer token."""
        return {}

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        data: Optional[Mapping[str, Any]] = None,
        files: Any = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> httpx.Response:
        credential = self._token_store.get(self.user_id, self.provider)

        async with self._http_client() as client:

            async def send(active: ProviderCredential) -> httpx.Response:
                merged = {
                    **self.static_headers(),
                    **(headers or {}),
                    "Authorization": f"Bearer {active.access_token}",
                }
                try:
                    return await client.request(
                        method,
                        path,
                        params=params,
                        json=json,
                        data=data,
                        files=files,
                        headers=merged,
                    )
                except httpx.HTTPError as exc:
                    logger.warning(
                        "%s %s %s failed in transport: %s", self.provider.value, method, path, exc
                    )
                    raise ProviderUnreachable(
                        provider=self.provider.value, reason=str(exc) or type(exc).__name__
                    ) from exc

            response = await send(credential)
            if response.status_code == httpx.codes.UNAUTHORIZED:
                logger.info(
                    "%s returned 401 for %s %s; refreshing credential",
                    self.provider.value,
                    method,
                    path,
                )
                credential = await self.refresh(credential)
                response = await send(credential)
                if response.status_code == httpx.codes.UNAUTHORIZED:
                    self._token_store.invalidate(self.user_id, self.provider)
                    raise AuthExpired(
                        f"{self.provider.value} rejected the refreshed credential.",
                        provider=self.provider.value,
                    )

        if not response.is_success:
            raise ProviderRequestFailed(
                provider=self.provider.value,
                status=response.status_code,
                body=response.text,
            )
        return response

    async def request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self.request(method, path, **kwargs)
        if not response.content:
            return {}
        return response.json()

    async def refresh(self, stale: ProviderCredential) -> ProviderCredential:
        """Replace ``stale`` with a refreshed credential and persist it.

        Concurrent callers holding the same stale token share a single refresh.
        """
        async with self._refresh_lock:
            current = self._token_store.get(self.user_id, self.provider)
            if current.access_token != stale.access_token:
                return current

            if not current.refresh_token:
                self._token_store.invalidate(self.user_id, self.provider)
                raise AuthExpired(
                    f"No {self.provider.value} refresh token is stored.",
                    provider=self.provider.value,
                )

            try:
                refreshed = await self._flow.refresh(current.refresh_token)
            except TokenExchangeFailed as exc:
                self._token_store.invalidate(self.user_id, self.provider)
                raise AuthExpired(
                    f"{self.provider.value} refused to refresh the credential.",
                    provider=self.provider.value,
                ) from exc

            self._token_store.save(self.user_id, self.provider, refreshed)
            return refreshed


class GoogleAuthenticatedClient(AuthenticatedClient):
    provider = Provider.GOOGLE
    base_url = "https://www.googleapis.com"


class EtsyAuthenticatedClient(AuthenticatedClient):
    """Etsy requires the application keystring alongside the bearer token."""

    provider = Provider.ETSY
    base_url = "https://openapi.etsy.com/v3"

    def __init__(self, *, api_key: str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._api_key = api_key

    def static_headers(self) -> Dict[str, str]:
        return {"x-api-key": self._api_key}


__all__ = [
    "AuthenticatedClient",
    "EtsyAuthenticatedClient",
    "GoogleAuthenticatedClient",
]
