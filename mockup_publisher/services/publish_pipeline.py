"""
Staged publishing of a digital-download listing.

Stages run strictly in order: validate, prepare_assets, create_draft,
upload_images, build_artifact, attach_and_persist. The two marketplace stages
are skipped in standalone mode. A failing stage aborts the attempt without
undoing earlier side effects; the failure names the stage and anything left
behind so the caller can reconcile it.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx

from mockup_publisher.clients.sqlite_store import SQLiteStore
from mockup_publisher.core.config import EtsySettings
from mockup_publisher.core.errors import (
    AssetUploadFailure,
    MockupPublisherError,
    PartialPublishFailure,
    ProviderRequestFailed,
    PublishFailed,
    ValidationError,
)
from mockup_publisher.models.listing import (
    AssetReference,
    Listing,
    ListingStatus,
    PublishMode,
)
from mockup_publisher.services.artifact import (
    ARTIFACT_FILENAME,
    ArtifactStorage,
    DownloadDocumentRenderer,
)
from mockup_publisher.services.content_generator import (
    TITLE_MAX_LENGTH,
    ContentGenerator,
    Section,
    normalize_tags,
)

logger = logging.getLogger(__name__)


class StageStatus(str, Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass(slots=True)
class StageOutcome:
    stage: str
    status: StageStatus
    detail: str = ""


@dataclass(slots=True)
class PublishRequest:
    """Caller input for one publish attempt; ``price`` may be a numeric string."""

    file_ids: List[str]
    title: Optional[str]
    description: Optional[str]
    price: Any
    tags: List[str] = field(default_factory=list)
    mode: PublishMode = PublishMode.STANDALONE
    taxonomy_id: Optional[int] = None
    sections: Sequence[Section] = ()


@dataclass(slots=True)
class PublishResult:
    listing: Listing
    stages: List[StageOutcome]
    partial_failure: Optional[PartialPublishFailure] = None


@dataclass(slots=True)
class _ValidatedRequest:
    file_ids: List[str]
    title: str
    description: str
    price: float
    tags: List[str]
    mode: PublishMode
    taxonomy_id: Optional[int]


class AssetSource(Protocol):
    async def get_metadata(self, file_id: str) -> Any: ...

    async def create_shareable_link(self, file_id: str) -> str: ...

    async def download_bytes(self, file_id: str) -> bytes: ...


class Marketplace(Protocol):
    async def get_shipping_profiles(self, shop_id: str) -> List[Dict[str, Any]]: ...

    async def get_return_policies(self, shop_id: str) -> List[Dict[str, Any]]: ...

    async def create_draft_listing(self, shop_id: str, fields: Dict[str, Any]) -> str: ...

    async def upload_image(
        self, shop_id: str, listing_id: str, image: bytes, rank: int, **kwargs: Any
    ) -> Any: ...

    async def upload_digital_file(
        self, shop_id: str, listing_id: str, content: bytes, filename: str, **kwargs: Any
    ) -> Any: ...


def parse_price(value: Any) -> float:
    if value is None or isinstance(value, bool) or (isinstance(value, str) and not value.strip()):
        raise ValidationError("Price is required.")
    try:
        price = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Price '{value}' is not a number.") from exc
    if not math.isfinite(price) or price <= 0:
        raise ValidationError("Price must be greater than zero.")
    return price


def _classify(exc: BaseException) -> StageStatus:
    if isinstance(exc, ProviderRequestFailed) and exc.retryable:
        return StageStatus.RETRYABLE
    if isinstance(exc, httpx.TransportError):
        return StageStatus.RETRYABLE
    return StageStatus.FATAL


class PublishPipeline:
    """Runs the publish stages for one owner against the given collaborators."""

    def __init__(
        self,
        *,
        store: SQLiteStore,
        artifacts: ArtifactStorage,
        etsy_settings: EtsySettings,
        renderer: Optional[DownloadDocumentRenderer] = None,
    ) -> None:
        self._store = store
        self._artifacts = artifacts
        self._etsy_settings = etsy_settings
        self._renderer = renderer or DownloadDocumentRenderer()

    async def publish(
        self,
        owner: str,
        request: PublishRequest,
        *,
        assets: AssetSource,
        marketplace: Optional[Marketplace] = None,
        shop_id: Optional[str] = None,
    ) -> PublishResult:
        stages: List[StageOutcome] = []

        validated = self.validate(request, marketplace=marketplace, shop_id=shop_id)
        stages.append(StageOutcome("validate", StageStatus.SUCCESS))

        try:
            prepared = await self._prepare_assets(assets, validated.file_ids)
        except Exception as exc:
            raise self._failure(stages, "prepare_assets", exc) from exc
        stages.append(
            StageOutcome("prepare_assets", StageStatus.SUCCESS, f"{len(prepared)} asset(s)")
        )

        marketplace_listing_id: Optional[str] = None
        partial_failure: Optional[PartialPublishFailure] = None

        if validated.mode is PublishMode.MARKETPLACE:
            if marketplace is None or not shop_id:
                raise ValidationError(
                    "Connect an Etsy shop before publishing to the marketplace."
                )
            try:
                marketplace_listing_id = await self._create_draft(marketplace, shop_id, validated)
            except Exception as exc:
                raise self._failure(stages, "create_draft", exc) from exc
            stages.append(
                StageOutcome("create_draft", StageStatus.SUCCESS, marketplace_listing_id)
            )

            failures = await self._upload_images(
                assets, marketplace, shop_id, marketplace_listing_id, prepared
            )
            if failures:
                partial_failure = PartialPublishFailure(failures)
                stages.append(
                    StageOutcome("upload_images", StageStatus.SUCCESS, partial_failure.message)
                )
            else:
                stages.append(StageOutcome("upload_images", StageStatus.SUCCESS))

        try:
            artifact = self._renderer.render(prepared, title=validated.title)
        except Exception as exc:
            raise self._failure(
                stages, "build_artifact", exc, marketplace_listing_id=marketplace_listing_id
            ) from exc
        stages.append(StageOutcome("build_artifact", StageStatus.SUCCESS))

        artifact_ref: Optional[str] = None
        try:
            if marketplace_listing_id is not None:
                await marketplace.upload_digital_file(  # type: ignore[union-attr]
                    shop_id, marketplace_listing_id, artifact, ARTIFACT_FILENAME
                )
                status = ListingStatus.DRAFT
            else:
                artifact_ref = self._artifacts.save(
                    owner=owner, data=artifact, filename=ARTIFACT_FILENAME
                )
                status = ListingStatus.READY

            row = self._store.insert_listing(
                {
                    "owner": owner,
                    "marketplace_listing_id": marketplace_listing_id,
                    "title": validated.title,
                    "description": validated.description,
                    "price": validated.price,
                    "tags": validated.tags,
                    "asset_references": [asset.model_dump() for asset in prepared],
                    "artifact_ref": artifact_ref,
                    "status": status.value,
                }
            )
        except Exception as exc:
            raise self._failure(
                stages,
                "attach_and_persist",
                exc,
                marketplace_listing_id=marketplace_listing_id,
                artifact_ref=artifact_ref,
            ) from exc
        stages.append(StageOutcome("attach_and_persist", StageStatus.SUCCESS))

        listing = Listing.model_validate(row)
        logger.info(
            "Published listing %s for %s (%s, status=%s)",
            listing.id,
            owner,
            validated.mode.value,
            listing.status.value,
        )
        return PublishResult(listing=listing, stages=stages, partial_failure=partial_failure)

    def validate(
        self,
        request: PublishRequest,
        *,
        marketplace: Optional[Marketplace] = None,
        shop_id: Optional[str] = None,
    ) -> _ValidatedRequest:
        """Check and normalize caller input without touching the network."""
        file_ids = [file_id for file_id in request.file_ids or [] if file_id]
        if not file_ids:
            raise ValidationError("At least one mockup file is required.")

        title = (request.title or "").strip()
        description = request.description or ""
        if not title or not description.strip():
            raise ValidationError("Title, description, and price are required.")
        price = parse_price(request.price)

        try:
            mode = PublishMode(request.mode)
        except ValueError as exc:
            raise ValidationError(f"Unknown publish mode '{request.mode}'.") from exc
        if mode is PublishMode.MARKETPLACE and (marketplace is None or not shop_id):
            raise ValidationError("Connect an Etsy shop before publishing to the marketplace.")

        if request.sections:
            description = ContentGenerator.append_sections(description, request.sections)

        return _ValidatedRequest(
            file_ids=file_ids,
            title=title[:TITLE_MAX_LENGTH],
            description=description,
            price=price,
            tags=normalize_tags(request.tags or []),
            mode=mode,
            taxonomy_id=request.taxonomy_id,
        )

    async def _prepare_assets(
        self, assets: AssetSource, file_ids: Sequence[str]
    ) -> List[AssetReference]:
        async def prepare(file_id: str) -> AssetReference:
            metadata = await assets.get_metadata(file_id)
            link = await assets.create_shareable_link(file_id)
            return AssetReference(
                file_id=file_id,
                name=metadata.name,
                share_link=link,
                mime_type=metadata.mime_type,
            )

        results = await asyncio.gather(
            *(prepare(file_id) for file_id in file_ids), return_exceptions=True
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return list(results)

    async def _create_draft(
        self, marketplace: Marketplace, shop_id: str, validated: _ValidatedRequest
    ) -> str:
        shipping_profile_id = await self._first_policy_id(
            marketplace.get_shipping_profiles, shop_id, "shipping_profile_id"
        )
        return_policy_id = await self._first_policy_id(
            marketplace.get_return_policies, shop_id, "return_policy_id"
        )

        settings = self._etsy_settings
        fields: Dict[str, Any] = {
            "quantity": settings.quantity,
            "title": validated.title,
            "description": validated.description,
            "price": validated.price,
            "who_made": settings.who_made,
            "when_made": settings.when_made,
            "taxonomy_id": validated.taxonomy_id or settings.default_taxonomy_id,
            "tags": validated.tags,
            "type": "download",
        }
        if shipping_profile_id is not None:
            fields["shipping_profile_id"] = shipping_profile_id
        if return_policy_id is not None:
            fields["return_policy_id"] = return_policy_id
        return await marketplace.create_draft_listing(shop_id, fields)

    @staticmethod
    async def _first_policy_id(lookup: Any, shop_id: str, key: str) -> Optional[int]:
        """Return the first policy id, treating lookup failures as no policy."""
        try:
            entries = await lookup(shop_id)
        except (ProviderRequestFailed, httpx.HTTPError) as exc:
            logger.warning("Lookup of %s for shop %s failed: %s", key, shop_id, exc)
            return None
        for entry in entries:
            if entry.get(key):
                return entry[key]
        return None

    async def _upload_images(
        self,
        assets: AssetSource,
        marketplace: Marketplace,
        shop_id: str,
        listing_id: str,
        prepared: Sequence[AssetReference],
    ) -> List[AssetUploadFailure]:
        failures: List[AssetUploadFailure] = []
        for index, asset in enumerate(prepared):
            rank = index + 1
            try:
                image = await assets.download_bytes(asset.file_id)
                await marketplace.upload_image(
                    shop_id,
                    listing_id,
                    image,
                    rank,
                    filename=asset.name,
                    mime_type=asset.mime_type or "image/jpeg",
                )
            except (MockupPublisherError, httpx.HTTPError) as exc:
                logger.warning(
                    "Skipping image %s (rank %d) for listing %s: %s",
                    asset.file_id,
                    rank,
                    listing_id,
                    exc,
                )
                failures.append(AssetUploadFailure(asset.file_id, rank, str(exc)))
        return failures

    @staticmethod
    def _failure(
        stages: List[StageOutcome],
        stage: str,
        exc: BaseException,
        *,
        marketplace_listing_id: Optional[str] = None,
        artifact_ref: Optional[str] = None,
    ) -> PublishFailed:
        status = _classify(exc)
        stages.append(StageOutcome(stage, status, str(exc)))
        logger.error(
            "Publish stage %s failed (%s); orphaned listing=%s artifact=%s",
            stage,
            status.value,
            marketplace_listing_id,
            artifact_ref,
        )
        return PublishFailed(
            stage=stage,
            outcome=status.value,
            cause=exc,
            marketplace_listing_id=marketplace_listing_id,
            artifact_ref=artifact_ref,
        )


__all__ = [
    "AssetSource",
    "Marketplace",
    "PublishPipeline",
    "PublishRequest",
    "PublishResult",
    "StageOutcome",
    "StageStatus",
    "parse_price",
]
