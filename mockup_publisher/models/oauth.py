"""
Domain models for OAuth credentials and PKCE correlation state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field


class Provider(str, Enum):
    """Third-party services the application authorizes against."""

    GOOGLE = "google"
    ETSY = "etsy"


class ProviderCredential(BaseModel):
    """Access/refresh token pair owned by one user for one provider."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    scope: Optional[str] = None
    invalidated: bool = False
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_token_response(
        cls,
        payload: Mapping[str, Any],
        *,
        issued_at: datetime,
        previous_refresh_token: Optional[str] = None,
    ) -> "ProviderCredential":
        """Build a credential from a token endpoint response body.

        Providers that do not rotate refresh tokens omit them on refresh, in
        which case the previous refresh token is carried forward.
        """
        expires_in = payload.get("expires_in")
        expires_at = (
            issued_at + timedelta(seconds=int(expires_in)) if expires_in else None
        )
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token") or previous_refresh_token,
            expires_at=expires_at,
            scope=payload.get("scope"),
            updated_at=issued_at,
        )


@dataclass(slots=True)
class OAuthCorrelationEntry:
    """Links a PKCE state token to its verifier and the user who started the flow."""

    state_token: str
    code_verifier: str
    owning_user_id: str
    created_at: datetime

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.created_at > ttl


__all__ = ["OAuthCorrelationEntry", "Provider", "ProviderCredential"]
