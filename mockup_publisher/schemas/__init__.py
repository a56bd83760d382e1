"""Public schema exports."""

from .auth import AuthStatusResponse, AuthorizationUrlResponse, OAuthCallbackPayload
from .listing import (
    GenerateContentRequest,
    GeneratedContentResponse,
    ListingResponse,
    MockupListResponse,
    PublishListingRequest,
    PublishListingResponse,
    SectionPayload,
    StageOutcomeResponse,
)
from .template import TemplateCreateRequest, TemplateUpdateRequest

__all__ = [
    "AuthStatusResponse",
    "AuthorizationUrlResponse",
    "GenerateContentRequest",
    "GeneratedContentResponse",
    "ListingResponse",
    "MockupListResponse",
    "OAuthCallbackPayload",
    "PublishListingRequest",
    "PublishListingResponse",
    "SectionPayload",
    "StageOutcomeResponse",
    "TemplateCreateRequest",
    "TemplateUpdateRequest",
]
