"""Etsy Open API v3 client for draft listings and their files."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from mockup_publisher.clients.authenticated import EtsyAuthenticatedClient

logger = logging.getLogger(__name__)


class EtsyClient:
    """Listing operations for the connected shop owner."""

    def __init__(self, api: EtsyAuthenticatedClient) -> None:
        self._api = api

    async def get_me(self) -> Dict[str, Any]:
        return await self._api.request_json("GET", "/application/users/me")

    async def list_shops(self) -> List[Dict[str, Any]]:
        """Return the shops owned by the authorized user (Etsy allows one)."""
        me = await self.get_me()
        user_id = me.get("user_id")
        if not user_id:
            return []
        payload = await self._api.request_json("GET", f"/application/users/{user_id}/shops")
        if "results" in payload:
            return list(payload["results"])
        return [payload] if payload.get("shop_id") else []

    async def create_draft_listing(self, shop_id: str, fields: Dict[str, Any]) -> str:
        """Create a draft listing and return its id."""
        payload = {**fields, "state": "draft"}
        result = await self._api.request_json(
            "POST",
            f"/application/shops/{shop_id}/listings",
            json=payload,
        )
        listing_id = str(result["listing_id"])
        logger.info("Created Etsy draft listing %s for shop %s", listing_id, shop_id)
        return listing_id

    async def upload_image(
        self,
        shop_id: str,
        listing_id: str,
        image: bytes,
        rank: int,
        *,
        filename: str = "mockup.jpg",
        mime_type: str = "image/jpeg",
    ) -> Dict[str, Any]:
        return await self._api.request_json(
            "POST",
            f"/application/shops/{shop_id}/listings/{listing_id}/images",
            files={"image": (filename, image, mime_type)},
            data={"rank": str(rank)},
        )

    async def upload_digital_file(
        self,
        shop_id: str,
        listing_id: str,
        content: bytes,
        filename: str,
        *,
        mime_type: str = "application/pdf",
    ) -> Dict[str, Any]:
        result = await self._api.request_json(
            "POST",
            f"/application/shops/{shop_id}/listings/{listing_id}/files",
            files={"file": (filename, content, mime_type)},
            data={"name": filename, "rank": "1"},
        )
        logger.info("Attached digital file %s to Etsy listing %s", filename, listing_id)
        return result

    async def get_shipping_profiles(self, shop_id: str) -> List[Dict[str, Any]]:
        payload = await self._api.request_json(
            "GET", f"/application/shops/{shop_id}/shipping-profiles"
        )
        return list(payload.get("results", []))

    async def get_return_policies(self, shop_id: str) -> List[Dict[str, Any]]:
        payload = await self._api.request_json(
            "GET", f"/application/shops/{shop_id}/policies/return"
        )
        return list(payload.get("results", []))

    async def activate_listing(self, shop_id: str, listing_id: str) -> Dict[str, Any]:
        return await self._api.request_json(
            "PATCH",
            f"/application/shops/{shop_id}/listings/{listing_id}",
            json={"state": "active"},
        )


__all__ = ["EtsyClient"]
