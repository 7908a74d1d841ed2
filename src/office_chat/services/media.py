"""Media host client for chat attachments.

Attachments are uploaded to Cloudinary through its REST API, with requests
signed by the Cloudinary SDK. The chat log keeps only the returned references;
deleting a message destroys the referenced resources.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any

import cloudinary.utils
import httpx

from office_chat.core.settings import settings
from office_chat.schemas.chat import Attachment
from office_chat.services.errors import MediaHostDisabledError, MediaHostError

# Configure logger for this module
logger = logging.getLogger(__name__)

CLOUDINARY_API_BASE = "https://api.cloudinary.com/v1_1"


@dataclass(frozen=True)
class MediaHostConfig:
    """Connection settings for the media host."""

    cloud_name: str | None
    api_key: str | None
    api_secret: str | None
    folder: str
    timeout_seconds: float

    @property
    def enabled(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)


def load_media_config() -> MediaHostConfig:
    """Build configuration object from global settings."""
    return MediaHostConfig(
        cloud_name=settings.cloudinary_cloud_name,
        api_key=settings.cloudinary_api_key,
        api_secret=settings.cloudinary_api_secret,
        folder=settings.cloudinary_folder,
        timeout_seconds=float(settings.media_http_timeout_seconds),
    )


def resource_type_for(content_type: str | None) -> str:
    """Return the media host resource type for a MIME type."""
    return "image" if (content_type or "").startswith("image/") else "raw"


class MediaHost:
    """HTTP client wrapper for the media host."""

    def __init__(
        self,
        config: MediaHostConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_media_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.enabled:
            raise MediaHostDisabledError("Media host credentials are not configured")

        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=f"{CLOUDINARY_API_BASE}/{self.config.cloud_name}",
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    def _signed(self, params: dict[str, Any]) -> dict[str, Any]:
        params = {**params, "timestamp": int(time.time())}
        signature = cloudinary.utils.api_sign_request(params, self.config.api_secret or "")
        return {**params, "api_key": self.config.api_key, "signature": signature}

    async def _post(
        self,
        path: str,
        data: dict[str, Any],
        files: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        client = await self._ensure_client()
        try:
            response = await client.post(path, data=data, files=files)
        except httpx.HTTPError as exc:
            raise MediaHostError(f"Media host request failed: {exc}") from exc
        if response.status_code >= httpx.codes.BAD_REQUEST:
            raise MediaHostError(f"Media host responded with {response.status_code}")
        try:
            body: dict[str, Any] = response.json()
        except ValueError as exc:
            raise MediaHostError("Media host returned malformed JSON") from exc
        return body

    async def upload(self, filename: str, content: bytes, content_type: str | None) -> Attachment:
        """Upload one file and return the attachment reference for the chat log."""
        file_id = str(uuid.uuid4())
        resource_type = resource_type_for(content_type)
        data = self._signed({"folder": self.config.folder, "public_id": file_id})
        logger.info("Uploading %s (%s, %d bytes)", filename, content_type, len(content))
        body = await self._post(
            f"/{resource_type}/upload",
            data=data,
            files={"file": (filename, content, content_type or "application/octet-stream")},
        )
        try:
            url = body["secure_url"]
            public_id = body["public_id"]
        except KeyError as exc:
            raise MediaHostError(f"Media host upload response missing {exc}") from exc

        return Attachment(
            id=file_id,
            filename=filename,
            url=url,
            type="image" if resource_type == "image" else "document",
            size=len(content),
            public_id=public_id,
        )

    async def destroy(self, public_id: str, *, resource_type: str = "image") -> bool:
        """Delete a resource; return True if the host reported it removed."""
        if not self.enabled:
            logger.debug("Media host disabled, not deleting %s", public_id)
            return False
        logger.info("Deleting media resource %s", public_id)
        body = await self._post(
            f"/{resource_type}/destroy",
            data=self._signed({"public_id": public_id}),
        )
        return body.get("result") == "ok"

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None
