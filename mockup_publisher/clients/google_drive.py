"""Google Drive client wrapper for mockup images."""

from __future__ import annotations

import logging
from typing import Optional

from mockup_publisher.clients.authenticated import GoogleAuthenticatedClient
from mockup_publisher.models.listing import DriveFile

logger = logging.getLogger(__name__)

_FILES_PATH = "/drive/v3/files"
_FILE_FIELDS = (
    "id,name,mimeType,thumbnailLink,webViewLink,webContentLink,"
    "size,createdTime,modifiedTime"
)


def _quote_query_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class GoogleDriveClient:
    """Read mockup images and publish share links from the user's Drive."""

    def __init__(
        self,
        api: GoogleAuthenticatedClient,
        default_folder_id: Optional[str] = None,
    ) -> None:
        self._api = api
        self._default_folder_id = default_folder_id

    async def list_images(self, folder_id: Optional[str] = None) -> list[DriveFile]:
        """List non-trashed images, newest first, optionally within a folder."""
        query = "mimeType contains 'image/' and trashed = false"
        target_folder = folder_id or self._default_folder_id
        if target_folder:
            query += f" and '{_quote_query_value(target_folder)}' in parents"

        payload = await self._api.request_json(
            "GET",
            _FILES_PATH,
            params={
                "q": query,
                "fields": f"files({_FILE_FIELDS})",
                "orderBy": "modifiedTime desc",
                "pageSize": 100,
            },
        )
        return [DriveFile.model_validate(item) for item in payload.get("files", [])]

    async def get_metadata(self, file_id: str) -> DriveFile:
        payload = await self._api.request_json(
            "GET",
            f"{_FILES_PATH}/{file_id}",
            params={"fields": _FILE_FIELDS},
        )
        return DriveFile.model_validate(payload)

    async def create_shareable_link(self, file_id: str) -> str:
        """Grant anyone-with-link read access and return the view link.

        Safe to call repeatedly; Drive reuses the existing ``anyone`` permission.
        """
        await self._api.request(
            "POST",
            f"{_FILES_PATH}/{file_id}/permissions",
            json={"role": "reader", "type": "anyone"},
        )
        payload = await self._api.request_json(
            "GET",
            f"{_FILES_PATH}/{file_id}",
            params={"fields": "webViewLink,webContentLink"},
        )
        link = payload.get("webViewLink")
        if not link:
            link = f"https://drive.google.com/file/d/{file_id}/view"
        return link

    async def download_bytes(self, file_id: str) -> bytes:
        response = await self._api.request(
            "GET",
            f"{_FILES_PATH}/{file_id}",
            params={"alt": "media"},
        )
        return response.content


__all__ = ["GoogleDriveClient"]
