"""Abstract storage interface."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Union, Optional, Iterator


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class FileNotFoundError(StorageError):
    """File not found in storage."""
    pass


class UploadError(StorageError):
    """Failed to upload file."""
    pass


class DownloadError(StorageError):
    """Failed to download file."""
    pass


class DeleteError(StorageError):
    """Failed to delete file."""
    pass


# Backends served by S3Storage
S3_BACKENDS = ("s3", "r2", "minio")


@dataclass
class StorageConfig:
    """Storage configuration."""
    backend: str  # 'local', 's3', 'r2', 'minio'

    # Local storage settings
    base_path: Optional[Path] = None
    public_url: Optional[str] = None

    # S3/R2/MinIO settings
    endpoint_url: Optional[str] = None
    bucket_name: Optional[str] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    region: str = "us-east-1"
    use_ssl: bool = True

    def __post_init__(self):
        if self.backend == "local":
            from ... import config
            if self.base_path is None:
                self.base_path = Path(config.UPLOADS_DIR)
            if self.public_url is None:
                self.public_url = config.PUBLIC_URL


class StorageInterface(ABC):
    """Abstract interface for file storage operations.

    Files are addressed by a folder ("products", "images", ...) and a file ID
    inside it.

    Implementations:
    - LocalStorage: Filesystem storage
    - S3Storage: AWS S3 / Cloudflare R2 / MinIO
    """

    backend: str = "unknown"

    @abstractmethod
    async def upload(
        self,
        file_id: str,
        content: Union[bytes, BinaryIO],
        folder: str = "uploads",
        content_type: Optional[str] = None
    ) -> str:
        """Upload a file to storage.

        Args:
            file_id: Unique file identifier
            content: File content as bytes or file-like object
            folder: Subfolder
            content_type: MIME type of the file

        Returns:
            Storage key/path of the uploaded file

        Raises:
            UploadError: If upload fails
        """
        pass

    @abstractmethod
    async def download(
        self,
        file_id: str,
        folder: str = "uploads"
    ) -> bytes:
        """Download a file from storage.

        Raises:
            FileNotFoundError: If file doesn't exist
            DownloadError: If download fails
        """
        pass

    @abstractmethod
    async def delete(
        self,
        file_id: str,
        folder: str = "uploads"
    ) -> bool:
        """Delete a file from storage.

        Returns:
            True if the file existed and was deleted

        Raises:
            DeleteError: If deletion fails
        """
        pass

    @abstractmethod
    def exists(
        self,
        file_id: str,
        folder: str = "uploads"
    ) -> bool:
        """Check if file exists."""
        pass

    @abstractmethod
    def get_url(
        self,
        file_id: str,
        folder: str = "uploads",
        expires: Optional[int] = None
    ) -> str:
        """Get URL for accessing the file.

        Args:
            file_id: Unique file identifier
            folder: Subfolder
            expires: Lifetime in seconds for signed URLs, where supported

        Returns:
            URL to access the file
        """
        pass

    @abstractmethod
    def list_files(
        self,
        folder: str = "uploads",
        prefix: Optional[str] = None
    ) -> Iterator[str]:
        """List file IDs in a folder, optionally filtered by prefix."""
        pass

    @abstractmethod
    async def get_size(
        self,
        file_id: str,
        folder: str = "uploads"
    ) -> int:
        """Get file size in bytes.

        Raises:
            FileNotFoundError: If file doesn't exist
        """
        pass

    async def upload_batch(
        self,
        files: list[tuple[str, Union[bytes, BinaryIO], str, Optional[str]]]
    ) -> list[str]:
        """Upload multiple files.

        Args:
            files: List of (file_id, content, folder, content_type) tuples

        Returns:
            List of storage keys/paths
        """
        results = []
        for file_id, content, folder, content_type in files:
            key = await self.upload(file_id, content, folder, content_type)
            results.append(key)
        return results
