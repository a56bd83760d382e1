"""Read access to published listings plus activation and artifact download."""

from __future__ import annotations

import logging
from typing import Optional

from mockup_publisher.clients.etsy import EtsyClient
from mockup_publisher.clients.sqlite_store import SQLiteStore
from mockup_publisher.core.errors import ResourceNotFound, ValidationError
from mockup_publisher.models.listing import Listing, ListingStatus
from mockup_publisher.services.artifact import ArtifactStorage

logger = logging.getLogger(__name__)


class ListingService:
    def __init__(self, store: SQLiteStore, artifacts: ArtifactStorage) -> None:
        self._store = store
        self._artifacts = artifacts

    def list_for_owner(self, owner: str) -> list[Listing]:
        return [Listing.model_validate(row) for row in self._store.list_listings(owner)]

    def get(self, owner: str, listing_id: int) -> Listing:
        row = self._store.get_listing(listing_id, owner)
        if row is None:
            raise ResourceNotFound(f"Listing {listing_id} not found.")
        return Listing.model_validate(row)

    def load_artifact(self, owner: str, listing_id: int) -> bytes:
        listing = self.get(owner, listing_id)
        if not listing.artifact_ref:
            raise ResourceNotFound(f"Listing {listing_id} has no stored download package.")
        return self._artifacts.load(listing.artifact_ref)

    async def activate(
        self,
        owner: str,
        listing_id: int,
        *,
        etsy: EtsyClient,
        shop_id: Optional[str],
    ) -> Listing:
        """Move a marketplace draft to the active state on Etsy and locally."""
        listing = self.get(owner, listing_id)
        if not listing.marketplace_listing_id:
            raise ValidationError("Only marketplace listings can be activated.")
        if not shop_id:
            raise ValidationError("Connect an Etsy shop before activating listings.")

        await etsy.activate_listing(shop_id, listing.marketplace_listing_id)
        self._store.update_listing_status(listing_id, owner, ListingStatus.ACTIVE.value)
        logger.info("Activated Etsy listing %s for %s", listing.marketplace_listing_id, owner)
        return listing.model_copy(update={"status": ListingStatus.ACTIVE})


__all__ = ["ListingService"]
