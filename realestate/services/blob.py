"""
Blob storage for property images.
Provides upload validation, local file storage and best-effort reference checks.
"""

import io
import logging
from pathlib import Path, PurePosixPath
from typing import List, Optional, Protocol

import aiofiles
import aiofiles.os
from PIL import Image, UnidentifiedImageError

from realestate.config import Settings
from realestate.utils.exceptions import ValidationError

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    """Object store holding listing images."""

    def is_managed(self, url: str) -> bool: ...

    async def upload(self, path: str, data: bytes, content_type: str) -> str: ...

    async def delete(self, url: str) -> None: ...


# PIL format names per accepted content type
EXPECTED_FORMATS = {
    "image/jpeg": {"jpeg", "jpg", "mpo"},
    "image/png": {"png"},
    "image/webp": {"webp"},
}


class LocalBlobStore:
    """
    Blob store writing files under ``upload_dir`` and serving them from ``base_url``.
    A URL is managed when it starts with ``base_url``; anything else is an
    external reference the store never touches.
    """

    def __init__(
        self,
        upload_dir: str,
        base_url: str,
        max_file_size: int = 10 * 1024 * 1024,
        allowed_types: Optional[List[str]] = None,
    ):
        self.upload_dir = Path(upload_dir)
        self.base_url = base_url.rstrip("/")
        self.max_file_size = max_file_size
        self.allowed_types = allowed_types or list(EXPECTED_FORMATS)

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocalBlobStore":
        return cls(
            upload_dir=settings.upload_dir,
            base_url=settings.blob_base_url,
            max_file_size=settings.max_file_size,
            allowed_types=settings.allowed_file_types,
        )

    def is_managed(self, url: str) -> bool:
        return bool(url) and url.startswith(self.base_url + "/")

    def _path_for_url(self, url: str) -> Path:
        return self._resolve(url[len(self.base_url) + 1:])

    def _resolve(self, relative: str) -> Path:
        """Map a blob path to a file under upload_dir, rejecting escapes."""
        parts = PurePosixPath(relative).parts
        if not parts or any(part in ("..", "") for part in parts) or PurePosixPath(relative).is_absolute():
            raise ValidationError(f"Invalid blob path '{relative}'")
        return self.upload_dir.joinpath(*parts)

    def validate_image(self, data: bytes, content_type: str) -> None:
        """
        Validate image bytes before storing them.

        Raises:
            ValidationError: If the type, size or content is not acceptable
        """
        if content_type not in self.allowed_types:
            raise ValidationError(
                f"File type '{content_type}' not allowed. Allowed types: {', '.join(self.allowed_types)}"
            )

        if not data:
            raise ValidationError("File is empty")

        if len(data) > self.max_file_size:
            max_mb = self.max_file_size / (1024 * 1024)
            raise ValidationError(f"File size exceeds maximum allowed size of {max_mb:.1f}MB")

        try:
            with Image.open(io.BytesIO(data)) as img:
                pil_format = (img.format or "").lower()
        except (UnidentifiedImageError, OSError) as e:
            raise ValidationError(f"Invalid image file: {e}") from e

        expected = EXPECTED_FORMATS.get(content_type)
        if expected and pil_format not in expected:
            raise ValidationError(f"File content doesn't match declared type {content_type}")

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """
        Store image bytes.

        Args:
            path: Blob path relative to the store root, e.g. ``property_images/x.jpg``
            data: Image bytes
            content_type: Declared MIME type

        Returns:
            Public URL of the stored blob
        """
        self.validate_image(data, content_type)
        file_path = self._resolve(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            async with aiofiles.open(file_path, "wb") as f:
                await f.write(data)
        except OSError:
            if file_path.exists():
                file_path.unlink()
            raise

        url = f"{self.base_url}/{PurePosixPath(path)}"
        logger.info(f"Stored blob {url} ({len(data)} bytes)")
        return url

    async def delete(self, url: str) -> None:
        """
        Delete a managed blob. A blob that is already gone counts as deleted.

        Raises:
            ValidationError: If the URL is not managed by this store
            OSError: If the file exists but cannot be removed
        """
        if not self.is_managed(url):
            raise ValidationError(f"Blob '{url}' is not managed by this store")

        file_path = self._path_for_url(url)
        try:
            await aiofiles.os.remove(file_path)
            logger.debug(f"Deleted blob {url}")
        except FileNotFoundError:
            logger.debug(f"Blob {url} already absent")

    async def exists(self, url: str) -> bool:
        if not self.is_managed(url):
            return False
        return await aiofiles.os.path.exists(self._path_for_url(url))
