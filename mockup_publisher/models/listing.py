"""
Domain models for users, listings and description templates.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ListingStatus(str, Enum):
    DRAFT = "draft"
    READY = "ready"
    ACTIVE = "active"


class PublishMode(str, Enum):
    """Where a listing is published.

    ``marketplace`` creates an Etsy draft; ``standalone`` stores the download
    package locally for copy-paste publishing.
    """

    MARKETPLACE = "marketplace"
    STANDALONE = "standalone"


class User(BaseModel):
    """Shop owner identified by the email of their Google account."""

    email: str
    google_connected: bool = False
    etsy_connected: bool = False
    etsy_shop_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DriveFile(BaseModel):
    """Image metadata as returned by the Drive files API."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    mime_type: Optional[str] = Field(None, alias="mimeType")
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailLink")
    web_view_link: Optional[str] = Field(None, alias="webViewLink")
    size: Optional[int] = None
    modified_at: Optional[datetime] = Field(None, alias="modifiedTime")


class AssetReference(BaseModel):
    """A prepared mockup file with its public download link."""

    file_id: str
    name: str
    share_link: str
    mime_type: Optional[str] = None


class Listing(BaseModel):
    """A published (or publish-ready) digital download listing."""

    id: Optional[int] = None
    owner: str
    marketplace_listing_id: Optional[str] = None
    title: str
    description: str
    price: float
    tags: list[str] = Field(default_factory=list)
    asset_references: list[AssetReference] = Field(default_factory=list)
    artifact_ref: Optional[str] = None
    status: ListingStatus
    created_at: Optional[datetime] = None

    @property
    def marketplace_url(self) -> Optional[str]:
        if not self.marketplace_listing_id:
            return None
        return f"https://www.etsy.com/listing/{self.marketplace_listing_id}"


class TemplateSection(BaseModel):
    """Reusable description block appended to generated listing copy."""

    id: int
    owner: str
    name: str
    content: str
    category: str = "section"
    is_default: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


__all__ = [
    "AssetReference",
    "DriveFile",
    "Listing",
    "ListingStatus",
    "PublishMode",
    "TemplateSection",
    "User",
]
