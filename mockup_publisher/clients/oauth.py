"""
OAuth authorization flows.

``SimpleAuthorizationFlow`` performs a plain authorization-code exchange (Google);
``PkceAuthorizationFlow`` binds the code to a locally held verifier and a
single-use state token (Etsy).
"""

from __future__ import annotations

import base64
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from hashlib import sha256
from typing import Any, Callable, Dict, Iterable, Optional, Tuple
from urllib.parse import urlencode

import httpx

from mockup_publisher.clients.correlation import CorrelationStore
from mockup_publisher.core.config import EtsySettings, GoogleSettings, OAuthSettings
from mockup_publisher.core.errors import (
    InvalidState,
    ProviderUnreachable,
    TokenExchangeFailed,
)
from mockup_publisher.models.oauth import (
    OAuthCorrelationEntry,
    Provider,
    ProviderCredential,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_code_verifier() -> str:
    """Return a high-entropy PKCE verifier (43 base64url characters)."""
    return secrets.token_urlsafe(32)


def derive_code_challenge(verifier: str) -> str:
    """S256 challenge: base64url(SHA-256(verifier)) without padding."""
    digest = sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


@dataclass(slots=True)
class AuthorizationRequest:
    """Redirect target plus the state token that correlates the callback."""

    redirect_url: str
    state_token: str


class AuthorizationFlow:
    """Shared token-endpoint handling for both flow variants."""

    def __init__(
        self,
        *,
        provider: Provider,
        client_id: str,
        redirect_uri: str,
        scopes: Iterable[str],
        authorize_url: str,
        token_url: str,
        client_secret: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.provider = provider
        self.token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._scopes = tuple(scopes)
        self._authorize_url = authorize_url
        self._timeout = timeout
        self._transport = transport
        self._clock = clock or _utcnow

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def _post_token(self, payload: Dict[str, str]) -> Dict[str, Any]:
        """POST to the token endpoint; any non-2xx is a failed exchange."""
        body = {"client_id": self._client_id, **payload}
        if self._client_secret:
            body["client_secret"] = self._client_secret

        try:
            async with self._http_client() as client:
                response = await client.post(
                    self.token_url,
                    data=body,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            raise TokenExchangeFailed(
                f"Could not reach the {self.provider.value} token endpoint: {exc}",
                provider=self.provider.value,
            ) from exc

        if not response.is_success:
            logger.warning(
                "%s token endpoint returned %s for grant_type=%s",
                self.provider.value,
                response.status_code,
                payload.get("grant_type"),
            )
            raise TokenExchangeFailed(
                f"{self.provider.value} token endpoint rejected the request.",
                provider=self.provider.value,
                status=response.status_code,
                body=response.text,
            )

        try:
            token_payload = response.json()
        except ValueError as exc:
            raise TokenExchangeFailed(
                f"{self.provider.value} token endpoint returned a non-JSON body.",
                provider=self.provider.value,
                status=response.status_code,
                body=response.text,
            ) from exc

        if not token_payload.get("access_token"):
            raise TokenExchangeFailed(
                f"Incomplete token payload returned from {self.provider.value}.",
                provider=self.provider.value,
                status=response.status_code,
            )
        return token_payload

    async def _exchange(self, code: str, **extra: str) -> ProviderCredential:
        issued_at = self._clock()
        payload = await self._post_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self._redirect_uri,
                **extra,
            }
        )
        return ProviderCredential.from_token_response(payload, issued_at=issued_at)

    async def refresh(self, refresh_token: str) -> ProviderCredential:
        """Exchange a refresh token for a new credential.

        Providers that rotate refresh tokens return a new one; otherwise the
        supplied token is kept on the returned credential.
        """
        issued_at = self._clock()
        payload = await self._post_token(
            {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )
        logger.info("Refreshed %s access token", self.provider.value)
        return ProviderCredential.from_token_response(
            payload,
            issued_at=issued_at,
            previous_refresh_token=refresh_token,
        )


class SimpleAuthorizationFlow(AuthorizationFlow):
    """Authorization-code exchange without extra server-side state."""

    def __init__(
        self,
        *,
        userinfo_url: Optional[str] = None,
        extra_auth_params: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._userinfo_url = userinfo_url
        self._extra_auth_params = dict(extra_auth_params or {})

    def get_auth_url(self) -> str:
        """Construct the consent URL from static configuration."""
        params = {
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "response_type": "code",
            "scope": " ".join(self._scopes),
            **self._extra_auth_params,
        }
        return f"{self._authorize_url}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> ProviderCredential:
        """Exchange an authorization code. A used or stale code is never retried."""
        return await self._exchange(code)

    async def fetch_user_email(self, credential: ProviderCredential) -> str:
        """Resolve the account email for a freshly exchanged credential."""
        if not self._userinfo_url:
            raise RuntimeError(f"{self.provider.value} flow has no userinfo endpoint")

        try:
            async with self._http_client() as client:
                response = await client.get(
                    self._userinfo_url,
                    headers={"Authorization": f"Bearer {credential.access_token}"},
                )
        except httpx.HTTPError as exc:
            raise ProviderUnreachable(
                provider=self.provider.value, reason=str(exc) or type(exc).__name__
            ) from exc
        if not response.is_success:
            raise TokenExchangeFailed(
                "Could not resolve the account email for the new credential.",
                provider=self.provider.value,
                status=response.status_code,
                body=response.text,
            )
        email = response.json().get("email")
        if not email:
            raise TokenExchangeFailed(
                "Userinfo response did not include an email address.",
                provider=self.provider.value,
                status=response.status_code,
            )
        return email.lower()


class PkceAuthorizationFlow(AuthorizationFlow):
    """Authorization-code exchange bound to a verifier and a single-use state token."""

    def __init__(
        self,
        *,
        store: CorrelationStore,
        state_ttl: timedelta = timedelta(minutes=10),
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._store = store
        self._state_ttl = state_ttl

    def begin_auth(self, owning_user_id: str) -> AuthorizationRequest:
        """Start a flow for ``owning_user_id`` and return the consent redirect."""
        now = self._clock()
        purged = self._store.purge_expired(now - self._state_ttl)
        if purged:
            logger.debug("Purged %d expired %s correlation entries", purged, self.provider.value)

        verifier = generate_code_verifier()
        state_token = secrets.token_urlsafe(24)
        self._store.insert(
            OAuthCorrelationEntry(
                state_token=state_token,
                code_verifier=verifier,
                owning_user_id=owning_user_id,
                created_at=now,
            )
        )

        params = {
            "response_type": "code",
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "scope": " ".join(self._scopes),
            "state": state_token,
            "code_challenge": derive_code_challenge(verifier),
            "code_challenge_method": "S256",
        }
        return AuthorizationRequest(
            redirect_url=f"{self._authorize_url}?{urlencode(params)}",
            state_token=state_token,
        )

    async def complete_auth(
        self, code: str, state_token: str
    ) -> Tuple[ProviderCredential, str]:
        """Consume the state token and exchange the code.

        Returns the credential and the id of the user who began the flow.
        """
        entry = self._store.pop(state_token)
        if entry is None:
            raise InvalidState("Unknown, expired or already used OAuth state.")
        if entry.is_expired(self._clock(), self._state_ttl):
            raise InvalidState("OAuth state token has expired.")

        credential = await self._exchange(code, code_verifier=entry.code_verifier)
        return credential, entry.owning_user_id


GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
ETSY_AUTHORIZE_URL = "https://www.etsy.com/oauth/connect"
ETSY_TOKEN_URL = "https://api.etsy.com/v3/public/oauth/token"


def build_google_flow(
    settings: GoogleSettings,
    *,
    timeout: float = 30.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> SimpleAuthorizationFlow:
    return SimpleAuthorizationFlow(
        provider=Provider.GOOGLE,
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        redirect_uri=str(settings.redirect_uri),
        scopes=settings.scopes,
        authorize_url=GOOGLE_AUTHORIZE_URL,
        token_url=GOOGLE_TOKEN_URL,
        userinfo_url=GOOGLE_USERINFO_URL,
        extra_auth_params={"access_type": "offline", "prompt": "consent"},
        timeout=timeout,
        transport=transport,
    )


def build_etsy_flow(
    settings: EtsySettings,
    oauth_settings: OAuthSettings,
    store: CorrelationStore,
    *,
    timeout: float = 30.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Optional[Clock] = None,
) -> PkceAuthorizationFlow:
    return PkceAuthorizationFlow(
        provider=Provider.ETSY,
        client_id=settings.api_key,
        redirect_uri=str(settings.redirect_uri),
        scopes=settings.scopes,
        authorize_url=ETSY_AUTHORIZE_URL,
        token_url=ETSY_TOKEN_URL,
        store=store,
        state_ttl=timedelta(seconds=oauth_settings.state_ttl_seconds),
        timeout=timeout,
        transport=transport,
        clock=clock,
    )


__all__ = [
    "AuthorizationFlow",
    "AuthorizationRequest",
    "PkceAuthorizationFlow",
    "SimpleAuthorizationFlow",
    "build_etsy_flow",
    "build_google_flow",
    "derive_code_challenge",
    "generate_code_verifier",
]
