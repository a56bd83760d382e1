"""Schemas related to OAuth flows and the signed-in user."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class OAuthCallbackPayload(BaseModel):
    """Payload sent to complete the Etsy OAuth callback exchange."""

    code: str = Field(..., description="Authorization code returned by the provider.")
    state: str = Field(..., description="Single-use state token issued when starting OAuth.")


class AuthorizationUrlResponse(BaseModel):
    authorization_url: str


class AuthStatusResponse(BaseModel):
    """Connection state for the current session."""

    authenticated: bool
    email: Optional[str] = None
    google_connected: bool = False
    etsy_connected: bool = False
    etsy_shop_id: Optional[str] = None


__all__ = ["AuthStatusResponse", "AuthorizationUrlResponse", "OAuthCallbackPayload"]
