"""Local filesystem storage implementation."""
from pathlib import Path
from typing import BinaryIO, Optional, Union, Iterator
from urllib.parse import quote

import aiofiles

from .base import (
    StorageInterface,
    StorageConfig,
    FileNotFoundError as StorageFileNotFoundError,
    UploadError,
    DownloadError,
    DeleteError
)


def safe_folder(folder: str) -> str:
    """Strip traversal segments from a folder name."""
    parts = [p for p in Path(folder).parts if p not in ("..", ".", "/", "\\")]
    return "/".join(parts) or "uploads"


class LocalStorage(StorageInterface):
    """Local filesystem storage backend.

    Stores files in directory structure:
        base_path/
            <folder>/
                <file_id>

    Files are served by the application under ``/uploads``, so URLs are
    ``{public_url}/uploads/{folder}/{file_id}``. Local URLs cannot expire.
    """

    backend = "local"

    def __init__(self, config: StorageConfig):
        """Initialize local storage.

        Args:
            config: Storage configuration with base_path
        """
        if config.backend != "local":
            raise ValueError(f"LocalStorage requires backend='local', got '{config.backend}'")

        self.config = config
        self.base_path = Path(config.base_path)
        self.public_url = (config.public_url or "").rstrip("/")
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _get_path(self, file_id: str, folder: str) -> Path:
        """Get full filesystem path for a file."""
        # Sanitize file_id to prevent directory traversal
        safe_id = Path(file_id).name
        return self.base_path / safe_folder(folder) / safe_id

    async def upload(
        self,
        file_id: str,
        content: Union[bytes, BinaryIO],
        folder: str = "uploads",
        content_type: Optional[str] = None
    ) -> str:
        """Upload file to local filesystem."""
        file_path = self._get_path(file_id, folder)

        # Create parent directory if needed
        file_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            async with aiofiles.open(file_path, 'wb') as f:
                if isinstance(content, bytes):
                    await f.write(content)
                else:
                    while True:
                        chunk = content.read(64 * 1024)
                        if not chunk:
                            break
                        if isinstance(chunk, str):
                            chunk = chunk.encode('utf-8')
                        await f.write(chunk)

            return str(file_path.relative_to(self.base_path).as_posix())

        except (IOError, OSError) as e:
            raise UploadError(f"Failed to upload {file_id}: {e}")

    async def download(self, file_id: str, folder: str = "uploads") -> bytes:
        """Download file from local filesystem."""
        file_path = self._get_path(file_id, folder)

        if not file_path.is_file():
            raise StorageFileNotFoundError(f"File not found: {file_id}")

        try:
            async with aiofiles.open(file_path, 'rb') as f:
                return await f.read()
        except (IOError, OSError) as e:
            raise DownloadError(f"Failed to download {file_id}: {e}")

    async def delete(self, file_id: str, folder: str = "uploads") -> bool:
        """Delete file from local filesystem."""
        file_path = self._get_path(file_id, folder)

        if not file_path.exists():
            return False

        try:
            file_path.unlink()
            return True
        except (IOError, OSError) as e:
            raise DeleteError(f"Failed to delete {file_id}: {e}")

    def exists(self, file_id: str, folder: str = "uploads") -> bool:
        """Check if file exists."""
        file_path = self._get_path(file_id, folder)
        return file_path.exists() and file_path.is_file()

    def get_url(self, file_id: str, folder: str = "uploads", expires: Optional[int] = None) -> str:
        """Public URL of a stored file; ``expires`` is ignored."""
        safe_id = quote(Path(file_id).name)
        return f"{self.public_url}/uploads/{safe_folder(folder)}/{safe_id}"

    def list_files(self, folder: str = "uploads", prefix: Optional[str] = None) -> Iterator[str]:
        """List files in folder."""
        folder_path = self.base_path / safe_folder(folder)

        if not folder_path.exists():
            return

        for item in sorted(folder_path.iterdir()):
            if item.is_file():
                file_id = item.name
                if prefix is None or file_id.startswith(prefix):
                    yield file_id

    async def get_size(self, file_id: str, folder: str = "uploads") -> int:
        """Get file size in bytes."""
        file_path = self._get_path(file_id, folder)

        if not file_path.is_file():
            raise StorageFileNotFoundError(f"File not found: {file_id}")

        return file_path.stat().st_size
