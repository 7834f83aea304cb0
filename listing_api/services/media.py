"""
Media store for property images and short videos.

Uploads arrive as base64 data URLs and are written to the local media
directory; responses mirror what a hosted CDN returns so the client can store
``secure_url`` in a property's media list and later delete by ``public_id``.
"""

from pathlib import Path
from typing import Iterable, List, Optional, Tuple
from urllib.parse import urlparse
from PIL import Image, UnidentifiedImageError
import aiofiles
import aiofiles.os
import base64
import binascii
import io
import re
import uuid
import logging

from listing_api.config import get_settings
from listing_api.schemas.media import MediaUploadResponse, MediaDeleteResponse
from listing_api.utils.exceptions import (
    FileSizeExceededError,
    FileUploadError,
    UnsupportedFileTypeError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<payload>.*)$", re.DOTALL)
PUBLIC_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

# File extension stored for each accepted MIME type
EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "video/mp4": "mp4",
    "video/quicktime": "mov",
    "video/x-msvideo": "avi",
}

# Pillow format names accepted for each image MIME type
IMAGE_FORMATS = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
    "image/gif": "GIF",
}


def public_id_from_url(url: str) -> str:
    """Last path segment of a media URL without its extension."""
    path = urlparse(url).path.rstrip("/")
    segment = path.rsplit("/", 1)[-1]
    return segment.rsplit(".", 1)[0] if "." in segment else segment


def decode_data_url(data_url: str) -> Tuple[str, bytes]:
    """
    Split a data URL into its MIME type and decoded bytes.

    Raises:
        ValidationError: If the string is not a base64 data URL
    """
    match = DATA_URL_PATTERN.match(data_url.strip())
    if not match:
        raise ValidationError("File must be a base64 data URL")
    try:
        content = base64.b64decode(match.group("payload"), validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("File payload is not valid base64")
    return match.group("mime").lower(), content


class MediaService:
    """Stores uploads under ``media_dir`` and serves them from ``media_base_url``."""

    def __init__(
        self,
        media_dir: Optional[str] = None,
        base_url: Optional[str] = None,
        max_file_size: Optional[int] = None,
        allowed_types: Optional[List[str]] = None
    ):
        settings = get_settings()
        self.media_dir = Path(media_dir or settings.media_dir)
        self.base_url = (base_url or settings.media_base_url).rstrip("/")
        self.max_file_size = max_file_size or settings.max_file_size
        self.allowed_types = allowed_types or settings.allowed_media_types

        # Ensure media directory exists
        self.media_dir.mkdir(parents=True, exist_ok=True)

    def _validate(self, mime_type: str, content: bytes) -> None:
        if mime_type not in self.allowed_types or mime_type not in EXTENSIONS:
            raise UnsupportedFileTypeError(mime_type, self.allowed_types)
        if not content:
            raise FileUploadError("File is empty")
        if len(content) > self.max_file_size:
            raise FileSizeExceededError(len(content), self.max_file_size)

    @staticmethod
    def _image_size(mime_type: str, content: bytes) -> Tuple[int, int]:
        try:
            with Image.open(io.BytesIO(content)) as img:
                if img.format != IMAGE_FORMATS[mime_type]:
                    raise ValidationError(
                        f"Image format '{img.format}' doesn't match MIME type '{mime_type}'"
                    )
                return img.size
        except (UnidentifiedImageError, OSError) as e:
            raise ValidationError(f"Invalid image file: {e}")

    async def upload(self, data_url: str) -> MediaUploadResponse:
        """
        Store an uploaded image or video.

        Raises:
            ValidationError: If the data URL or image content is invalid
            UnsupportedFileTypeError: If the MIME type is not accepted
            FileSizeExceededError: If the decoded file is too large
        """
        mime_type, content = decode_data_url(data_url)
        self._validate(mime_type, content)

        resource_type = mime_type.split("/", 1)[0]
        width = height = None
        if resource_type == "image":
            width, height = self._image_size(mime_type, content)

        public_id = uuid.uuid4().hex
        extension = EXTENSIONS[mime_type]
        file_path = self.media_dir / f"{public_id}.{extension}"

        async with aiofiles.open(file_path, "wb") as f:
            await f.write(content)

        logger.info(f"Stored {resource_type} upload {public_id}.{extension} ({len(content)} bytes)")
        return MediaUploadResponse(
            secure_url=f"{self.base_url}/{public_id}.{extension}",
            public_id=public_id,
            resource_type=resource_type,
            format=extension,
            bytes=len(content),
            width=width,
            height=height,
        )

    async def delete(self, public_id: str) -> MediaDeleteResponse:
        """Delete a stored upload; ``not found`` when nothing matches."""
        if not PUBLIC_ID_PATTERN.match(public_id):
            raise ValidationError("Invalid public_id")

        matches = [p for p in self.media_dir.glob(f"{public_id}.*") if p.stem == public_id]
        if not matches:
            logger.debug(f"Media delete found nothing for {public_id}")
            return MediaDeleteResponse(result="not found")

        for path in matches:
            await aiofiles.os.remove(path)
        logger.info(f"Deleted media {public_id}")
        return MediaDeleteResponse(result="ok")

    async def discard_uploads(self, urls: Iterable[str]) -> List[str]:
        """
        Delete uploads that were never saved onto a property.

        Each deletion is attempted on its own; a failure is logged and the
        rest still run.

        Returns:
            URLs that could not be deleted
        """
        failed = []
        for url in urls:
            try:
                await self.delete(public_id_from_url(url))
            except Exception as e:
                logger.error(f"Failed to discard media {url}: {e}")
                failed.append(url)
        return failed
