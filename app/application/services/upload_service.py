"""Upload service - validated file uploads to the configured storage backend.

Files are stored under a folder ("products", "images", ...) with a key made
from the sanitized original name and a random UUID, so uploads never
overwrite each other.
"""
import re
import uuid
from pathlib import Path
from typing import Optional

from ... import config
from ...errors import ExternalServiceError, ValidationError
from ...infrastructure.storage import StorageError, StorageInterface, get_storage
from ...log import get_logger

logger = get_logger(__name__)

_UNSAFE_CHARS_RE = re.compile(r"[^a-zA-Z0-9_-]")
_EXT_RE = re.compile(r"^\.[a-zA-Z0-9]{1,10}$")

MB = 1024 * 1024


def bytes_to_mb(size: int) -> float:
    """Size in megabytes rounded to 2 decimals."""
    return round(size / MB, 2)


def format_file_size(size: int) -> str:
    """Human readable size: B, KB, MB or GB."""
    if size < 1024:
        return f"{size} B"
    if size < MB:
        return f"{size / 1024:.2f} KB"
    if size < 1024 * MB:
        return f"{size / MB:.2f} MB"
    return f"{size / (1024 * MB):.2f} GB"


def generate_file_key(filename: str) -> str:
    """Unique storage key ``{sanitized-stem}-{uuid4}{ext}``.

    >>> generate_file_key("My Course.pdf")  # doctest: +SKIP
    'My-Course-1b4e28ba-2fa1-11d2-883f-0016d3cca427.pdf'
    """
    path = Path(Path(filename or "").name)
    ext = path.suffix.lower() if _EXT_RE.match(path.suffix) else ""
    stem = path.name[: -len(path.suffix)] if path.suffix else path.name
    safe_stem = _UNSAFE_CHARS_RE.sub("-", stem)[:100] or "file"
    return f"{safe_stem}-{uuid.uuid4()}{ext}"


class UploadService:
    """Service for handling file uploads.

    Responsibilities:
    - File validation (type, size)
    - Key generation
    - Storage and URL generation
    """

    def __init__(self, storage: Optional[StorageInterface] = None):
        self.storage = storage or get_storage()

    async def upload_file(
        self,
        content: bytes,
        filename: str,
        content_type: Optional[str],
        folder: str = "products",
        max_size: Optional[int] = None
    ) -> dict:
        """Validate and store a single file.

        Args:
            content: File bytes
            filename: Original file name
            content_type: MIME type
            folder: Target folder
            max_size: Size limit in bytes (defaults to MAX_UPLOAD_SIZE)

        Returns:
            Dict with key, folder, url, size, content_type

        Raises:
            ValidationError: Disallowed type, empty or oversized file
            ExternalServiceError: Storage backend failure
        """
        self._validate(content, filename, content_type, max_size)

        key = generate_file_key(filename)
        try:
            await self.storage.upload(key, content, folder, content_type)
        except StorageError as e:
            logger.error("upload_failed", key=key, folder=folder, error=str(e))
            raise ExternalServiceError("Storage", "File upload failed")

        logger.info(
            "file_uploaded",
            key=key,
            folder=folder,
            size=len(content),
            backend=self.storage.backend,
        )
        return {
            "key": key,
            "folder": folder,
            "url": self.storage.get_url(key, folder),
            "size": len(content),
            "size_formatted": format_file_size(len(content)),
            "content_type": content_type,
        }

    async def upload_files(self, files: list[tuple[bytes, str, Optional[str]]], folder: str = "products") -> list[dict]:
        """Upload several (content, filename, content_type) tuples.

        All files are validated before the first one is stored.
        """
        for content, filename, content_type in files:
            self._validate(content, filename, content_type)
        return [
            await self.upload_file(content, filename, content_type, folder)
            for content, filename, content_type in files
        ]

    async def delete_file(self, key: str, folder: str = "products") -> bool:
        try:
            return await self.storage.delete(key, folder)
        except StorageError as e:
            logger.error("delete_failed", key=key, folder=folder, error=str(e))
            raise ExternalServiceError("Storage", "File deletion failed")

    def file_exists(self, key: str, folder: str = "products") -> bool:
        return self.storage.exists(key, folder)

    def get_download_url(
        self,
        key: str,
        folder: str = "products",
        expires: Optional[int] = None
    ) -> str:
        """Time-limited URL for a stored file (signed where the backend supports it)."""
        if expires is None:
            expires = config.SIGNED_URL_EXPIRY
        try:
            return self.storage.get_url(key, folder, expires=expires)
        except StorageError as e:
            logger.error("signed_url_failed", key=key, folder=folder, error=str(e))
            raise ExternalServiceError("Storage", "Could not create download link")

    def get_storage_info(self) -> dict:
        return {
            "backend": self.storage.backend,
            "max_file_size_mb": bytes_to_mb(config.MAX_UPLOAD_SIZE),
            "allowed_types": sorted(config.ALLOWED_UPLOAD_TYPES),
        }

    @staticmethod
    def check_size(size: int, max_size: Optional[int] = None) -> None:
        """Reject a size above max_size (defaults to MAX_UPLOAD_SIZE)."""
        limit = max_size if max_size is not None else config.MAX_UPLOAD_SIZE
        if size > limit:
            raise ValidationError(
                f"File size exceeds maximum allowed size of {bytes_to_mb(limit):g}MB"
            )

    @staticmethod
    def _validate(
        content: bytes,
        filename: str,
        content_type: Optional[str],
        max_size: Optional[int] = None
    ) -> None:
        if not filename:
            raise ValidationError("File name is required")

        if content_type not in config.ALLOWED_UPLOAD_TYPES:
            raise ValidationError(f"File type {content_type or 'unknown'} is not allowed")

        if not content:
            raise ValidationError("File is empty")

        UploadService.check_size(len(content), max_size)
