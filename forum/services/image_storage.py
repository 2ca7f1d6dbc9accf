"""Avatar upload collaborators used by profile edits.

Two interchangeable implementations share the :class:`ImageUploader`
protocol: :class:`LocalImageStorage` writes files beneath ``UPLOAD_DIR`` and
returns a path served by the static ``/upload`` mount, while
:class:`ImgurImageUploader` hosts the file on Imgur. Both return ``None`` when
no file was supplied so the caller can keep the previous image reference.
"""

from __future__ import annotations

import base64
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import httpx

from forum.errors import InvalidOperationError
from forum.settings import AppSettings

logger = logging.getLogger(__name__)

IMGUR_UPLOAD_URL = "https://api.imgur.com/3/image"

# Accepted avatar types and the extension each is stored under
IMAGE_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


@dataclass(frozen=True)
class ImageUpload:
    """Raw file received from the transport layer."""

    filename: str
    content_type: str
    data: bytes


class ImageUploader(Protocol):
    async def upload(self, image: ImageUpload | None) -> str | None:
        """Store ``image`` and return its reference, or ``None`` when absent."""
        ...


def validate_image(image: ImageUpload, *, max_bytes: int) -> str:
    """Reject unsupported types and oversized files; return the file extension.

    The extension comes from the content type, never from the client filename.
    """

    content_type = image.content_type.split(";", 1)[0].strip().lower()
    extension = IMAGE_EXTENSIONS.get(content_type)
    if extension is None:
        raise InvalidOperationError("File must be a PNG, JPEG, GIF or WebP image")
    if len(image.data) > max_bytes:
        raise InvalidOperationError(
            f"Image size must be less than {max_bytes // (1024 * 1024)}MB"
        )
    return extension


class LocalImageStorage:
    """Persist uploads on the local filesystem."""

    def __init__(self, directory: str | Path, *, max_bytes: int) -> None:
        self._directory = Path(directory)
        self._max_bytes = max_bytes

    async def upload(self, image: ImageUpload | None) -> str | None:
        if image is None:
            return None
        extension = validate_image(image, max_bytes=self._max_bytes)

        self._directory.mkdir(parents=True, exist_ok=True)
        unique_name = f"{uuid.uuid4().hex}{extension}"
        (self._directory / unique_name).write_bytes(image.data)

        logger.info("Stored avatar upload %s (%d bytes)", unique_name, len(image.data))
        return f"/upload/{unique_name}"


class ImgurImageUploader:
    """Host uploads on Imgur through its anonymous upload API."""

    def __init__(
        self,
        client_id: str,
        *,
        max_bytes: int,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._client_id = client_id
        self._max_bytes = max_bytes
        self._transport = transport
        self._timeout = timeout

    async def upload(self, image: ImageUpload | None) -> str | None:
        if image is None:
            return None
        validate_image(image, max_bytes=self._max_bytes)

        async with httpx.AsyncClient(
            transport=self._transport, timeout=self._timeout
        ) as client:
            response = await client.post(
                IMGUR_UPLOAD_URL,
                headers={"Authorization": f"Client-ID {self._client_id}"},
                data={
                    "image": base64.b64encode(image.data).decode("ascii"),
                    "type": "base64",
                    "name": image.filename,
                },
            )
        response.raise_for_status()

        payload = response.json()
        link = (payload.get("data") or {}).get("link")
        if not link:
            raise RuntimeError("Imgur response did not include an image link")

        logger.info("Uploaded avatar %s to Imgur", image.filename)
        return link


def build_image_uploader(settings: AppSettings) -> ImageUploader:
    """Select Imgur when a client id is configured, local storage otherwise."""

    if settings.imgur_client_id:
        return ImgurImageUploader(
            settings.imgur_client_id, max_bytes=settings.max_upload_bytes
        )
    return LocalImageStorage(settings.upload_dir, max_bytes=settings.max_upload_bytes)
