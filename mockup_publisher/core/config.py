"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI routes, the provider clients and
the publish pipeline share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

import os

from pydantic import AnyHttpUrl, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


def _split_scopes(value: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
    """Support providing scopes as a comma- or space-separated string."""
    if isinstance(value, tuple):
        return value
    if isinstance(value, list):
        return tuple(value)
    return tuple(
        scope.strip() for scope in value.replace(",", " ").split() if scope.strip()
    )


class _Settings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)


class GoogleSettings(_Settings):
    """Configuration required for Google sign-in and Drive access."""

    client_id: str = Field(..., alias="GOOGLE_CLIENT_ID")
    client_secret: str = Field(..., alias="GOOGLE_CLIENT_SECRET")
    redirect_uri: AnyHttpUrl = Field(..., alias="GOOGLE_REDIRECT_URI")
    drive_folder_id: Optional[str] = Field(
        None,
        alias="GOOGLE_DRIVE_FOLDER_ID",
        description="Folder used when listing mockups without an explicit folder.",
    )
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        (
            "https://www.googleapis.com/auth/drive",
            "https://www.googleapis.com/auth/userinfo.email",
        ),
        alias="GOOGLE_OAUTH_SCOPES",
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def split_scopes(cls, value: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
        return _split_scopes(value)


class EtsySettings(_Settings):
    """Configuration for the Etsy Open API v3 integration."""

    api_key: str = Field(..., alias="ETSY_API_KEY")
    redirect_uri: AnyHttpUrl = Field(..., alias="ETSY_REDIRECT_URI")
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        ("listings_w", "listings_r", "shops_r"),
        alias="ETSY_OAUTH_SCOPES",
    )
    default_taxonomy_id: int = Field(
        2322,
        alias="ETSY_DEFAULT_TAXONOMY_ID",
        description="Taxonomy used for draft listings when the caller supplies none.",
    )
    who_made: str = Field("i_did", alias="ETSY_WHO_MADE")
    when_made: str = Field("made_to_order", alias="ETSY_WHEN_MADE")
    quantity: int = Field(999, alias="ETSY_LISTING_QUANTITY")

    @field_validator("scopes", mode="before")
    @classmethod
    def split_scopes(cls, value: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
        return _split_scopes(value)


class SecuritySettings(_Settings):
    """Security-related configuration."""

    token_encryption_secret: Optional[str] = Field(
        None,
        alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )
    previous_token_encryption_secrets: Annotated[tuple[str, ...], NoDecode] = Field(
        (),
        alias="TOKEN_ENCRYPTION_PREVIOUS_SECRETS",
        description="Retired secrets still accepted when reading stored tokens.",
    )
    session_secret: Optional[str] = Field(
        None,
        alias="SESSION_SECRET",
        description="Secret used to sign session tokens. Defaults to the Google secret.",
    )
    session_ttl_seconds: int = Field(24 * 60 * 60, alias="SESSION_TTL")

    @field_validator("previous_token_encryption_secrets", mode="before")
    @classmethod
    def split_secrets(cls, value: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
        return _split_scopes(value)


class GeminiSettings(_Settings):
    """Configuration for Gemini model access."""

    api_key: str = Field(..., alias="GEMINI_API_KEY")
    vision_model_name: str = Field("gemini-2.0-flash", alias="GEMINI_VISION_MODEL_NAME")


class OAuthSettings(_Settings):
    """OAuth flow configuration shared by both providers."""

    state_ttl_seconds: int = Field(600, alias="OAUTH_STATE_TTL")
    state_backend: str = Field(
        "memory",
        alias="OAUTH_STATE_BACKEND",
        description="Where PKCE correlation entries live: 'memory' or 'sqlite'.",
    )


class StorageSettings(_Settings):
    """Local persistence locations."""

    database_path: str = Field("data/mockup_publisher.db", alias="DATABASE_PATH")
    artifact_dir: str = Field("data/artifacts", alias="ARTIFACT_DIR")


class AppSettings(_Settings):
    """Root settings object for the FastAPI application."""

    environment: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="APP_LOG_LEVEL")
    http_timeout_seconds: float = Field(
        30.0,
        alias="HTTP_TIMEOUT_SECONDS",
        description="Timeout applied to every outbound provider request.",
    )
    frontend_base_url: Optional[HttpUrl] = Field(
        None,
        alias="FRONTEND_BASE_URL",
        description="Optional URL for redirecting users back to the front-end.",
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    google: GoogleSettings = Field(default_factory=GoogleSettings)
    etsy: EtsySettings = Field(default_factory=EtsySettings)
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "EtsySettings",
    "GeminiSettings",
    "GoogleSettings",
    "OAuthSettings",
    "SecuritySettings",
    "StorageSettings",
    "get_settings",
]
