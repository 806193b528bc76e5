"""Object storage client for student code images."""

import base64
import binascii
import logging
import re
import secrets
import time
from typing import Dict, Optional, Tuple
from urllib.parse import quote, unquote

import httpx

from ktree.config import get_settings
from ktree.errors import BlobStorageError, ValidationError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/webp": "webp",
}

_DATA_URL = re.compile(r"^data:(image/[a-zA-Z0-9.+-]+);base64,(.+)$", re.DOTALL)


def parse_code_image(
    image_base64: str, mime_type: Optional[str], max_bytes: int
) -> Tuple[bytes, str, str]:
    """Decode a base64 or data-URL image into (bytes, extension, mime type)."""
    raw = (image_base64 or "").strip()
    if not raw:
        raise ValidationError("Image content is empty")

    mime = (mime_type or "").strip().lower()
    match = _DATA_URL.match(raw)
    if match:
        mime = mime or match.group(1).lower()
        raw = match.group(2)

    ext = IMAGE_EXTENSIONS.get(mime)
    if not ext:
        raise ValidationError("Only PNG, JPEG and WEBP images are supported")

    try:
        data = base64.b64decode(re.sub(r"\s+", "", raw), validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Image is not valid base64")
    if not data:
        raise ValidationError("Image content is empty")
    if len(data) > max_bytes:
        raise ValidationError(
            f"Image must not exceed {max_bytes // (1024 * 1024)} MB",
            {"max_bytes": max_bytes},
        )
    return data, ext, mime


class BlobStorageClient:
    """Client for the storage REST API holding code images."""

    def __init__(self):
        self.settings = get_settings()
        self.base_url = self.settings.blob_storage_base.rstrip("/")
        self.bucket = self.settings.blob_storage_bucket
        self.timeout = httpx.Timeout(self.settings.blob_storage_timeout)

    async def upload_image(
        self, image_base64: str, mime_type: Optional[str] = None
    ) -> str:
        """Store an image and return its public URL."""
        data, ext, mime = parse_code_image(
            image_base64, mime_type, self.settings.max_code_image_bytes
        )
        object_path = (
            f"{self.settings.blob_storage_prefix}/"
            f"{int(time.time() * 1000)}-{secrets.token_hex(8)}.{ext}"
        )
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/storage/v1/object/{self.bucket}/{object_path}",
                    content=data,
                    headers=self._get_headers(mime),
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise BlobStorageError(f"Image upload failed: {exc}") from exc
        return self.public_url(object_path)

    async def remove_image(self, image_url: Optional[str]) -> None:
        """Delete an image previously returned by ``upload_image``.

        Failures are logged, not raised.
        """
        object_path = self.object_path_from_url(image_url)
        if not object_path:
            return
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    "DELETE",
                    f"{self.base_url}/storage/v1/object/{self.bucket}",
                    json={"prefixes": [object_path]},
                    headers=self._get_headers("application/json"),
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Could not remove image %s: %s", object_path, exc)

    def public_url(self, object_path: str) -> str:
        return (
            f"{self.base_url}/storage/v1/object/public/{self.bucket}/"
            f"{quote(object_path)}"
        )

    def object_path_from_url(self, image_url: Optional[str]) -> Optional[str]:
        if not image_url:
            return None
        marker = f"/storage/v1/object/public/{self.bucket}/"
        idx = image_url.find(marker)
        if idx == -1:
            return None
        return unquote(image_url[idx + len(marker):]) or None

    def _get_headers(self, content_type: str) -> Dict[str, str]:
        headers = {
            "X-Service": "knowledge-tree",
            "Content-Type": content_type,
        }
        if self.settings.blob_storage_key:
            headers["Authorization"] = f"Bearer {self.settings.blob_storage_key}"
        return headers


def get_blob_storage() -> BlobStorageClient:
    """Dependency provider for the blob storage client."""
    return BlobStorageClient()
