"""
Pydantic models for mockup browsing, content generation and publishing.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from mockup_publisher.models.listing import (
    AssetReference,
    DriveFile,
    Listing,
    ListingStatus,
    PublishMode,
)


class SectionPayload(BaseModel):
    """A description section supplied inline instead of a stored template."""

    name: str = Field(..., min_length=1)
    content: str = Field(..., description="Text appended verbatim under the banner.")


class MockupListResponse(BaseModel):
    files: List[DriveFile] = Field(default_factory=list)
    folder_id: Optional[str] = None


class GenerateContentRequest(BaseModel):
    file_ids: List[str] = Field(default_factory=list)
    sections: Optional[List[SectionPayload]] = Field(
        None,
        description="Sections to weave in; the owner's default templates when omitted.",
    )


class GeneratedContentResponse(BaseModel):
    title: str
    description: str
    tags: List[str]
    category: str
    analysis: str
    generated_at: datetime
    defaults_used: List[str] = Field(default_factory=list)
    file_count: int


class PublishListingRequest(BaseModel):
    """Publish payload. Presence and range checks happen in the pipeline."""

    file_ids: List[str] = Field(default_factory=list)
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Union[float, str]] = Field(
        None, description="Listing price; numeric strings such as '9.99' are accepted."
    )
    tags: List[str] = Field(default_factory=list)
    mode: PublishMode = PublishMode.STANDALONE
    taxonomy_id: Optional[int] = None
    sections: List[SectionPayload] = Field(default_factory=list)


class ListingResponse(BaseModel):
    id: int
    marketplace_listing_id: Optional[str] = None
    marketplace_url: Optional[str] = None
    title: str
    description: str
    price: float
    tags: List[str]
    asset_references: List[AssetReference]
    status: ListingStatus
    download_path: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_listing(cls, listing: Listing) -> "ListingResponse":
        return cls(
            id=listing.id,
            marketplace_listing_id=listing.marketplace_listing_id,
            marketplace_url=listing.marketplace_url,
            title=listing.title,
            description=listing.description,
            price=listing.price,
            tags=listing.tags,
            asset_references=listing.asset_references,
            status=listing.status,
            download_path=(
                f"/api/listings/{listing.id}/download" if listing.artifact_ref else None
            ),
            created_at=listing.created_at,
        )


class StageOutcomeResponse(BaseModel):
    stage: str
    status: str
    detail: str = ""


class PublishListingResponse(BaseModel):
    listing: ListingResponse
    stages: List[StageOutcomeResponse]
    partial_failure: Optional[Dict[str, Any]] = None


__all__ = [
    "GenerateContentRequest",
    "GeneratedContentResponse",
    "ListingResponse",
    "MockupListResponse",
    "PublishListingRequest",
    "PublishListingResponse",
    "SectionPayload",
    "StageOutcomeResponse",
]
