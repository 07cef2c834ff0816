"""Storage abstraction layer for file operations.

Supports multiple backends: local filesystem, S3, Cloudflare R2, MinIO.
"""
from .base import (
    StorageInterface,
    StorageError,
    FileNotFoundError,
    UploadError,
    DownloadError,
    DeleteError,
    StorageConfig,
)
from .local_storage import LocalStorage
from .s3_storage import S3Storage
from .factory import get_storage, get_storage_config, get_storage_from_config, reset_storage

__all__ = [
    "StorageInterface",
    "StorageError",
    "FileNotFoundError",
    "UploadError",
    "DownloadError",
    "DeleteError",
    "StorageConfig",
    "LocalStorage",
    "S3Storage",
    "get_storage",
    "get_storage_config",
    "get_storage_from_config",
    "reset_storage",
]
