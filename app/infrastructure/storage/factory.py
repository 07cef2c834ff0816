"""Factory for creating storage backends."""
import os
from pathlib import Path
from typing import Optional

from ... import config as app_config

from .base import S3_BACKENDS, StorageConfig, StorageInterface
from .local_storage import LocalStorage


# Singleton instance
_storage_instance: Optional[StorageInterface] = None


def get_storage_config() -> StorageConfig:
    """Get storage configuration from environment variables.

    Environment variables:
    - STORAGE_BACKEND: 'local' (default), 's3', 'r2', 'minio'
    - STORAGE_BASE_PATH: Base path for local storage (default: UPLOADS_DIR)

    For S3/R2/MinIO:
    - S3_BUCKET: Bucket name
    - S3_ENDPOINT: Custom endpoint (required for R2 and MinIO)
    - S3_ACCESS_KEY_ID: Access key
    - S3_SECRET_ACCESS_KEY: Secret key
    - S3_REGION: Region (default: us-east-1, "auto" for R2)
    - S3_USE_SSL: Use SSL (default: true)
    """
    backend = os.environ.get("STORAGE_BACKEND", "local").lower()

    if backend == "local":
        base_path = os.environ.get("STORAGE_BASE_PATH")
        return StorageConfig(
            backend="local",
            base_path=Path(base_path) if base_path else Path(app_config.UPLOADS_DIR),
            public_url=app_config.PUBLIC_URL,
        )

    elif backend in S3_BACKENDS:
        bucket = os.environ.get("S3_BUCKET")
        if not bucket:
            raise ValueError("S3_BUCKET environment variable is required for S3 storage")

        endpoint = os.environ.get("S3_ENDPOINT")
        if backend in ("r2", "minio") and not endpoint:
            raise ValueError(f"S3_ENDPOINT environment variable is required for {backend} storage")

        default_region = "auto" if backend == "r2" else "us-east-1"
        return StorageConfig(
            backend=backend,
            bucket_name=bucket,
            endpoint_url=endpoint,
            access_key=os.environ.get("S3_ACCESS_KEY_ID"),
            secret_key=os.environ.get("S3_SECRET_ACCESS_KEY"),
            region=os.environ.get("S3_REGION", default_region),
            use_ssl=os.environ.get("S3_USE_SSL", "true").lower() == "true"
        )

    else:
        raise ValueError(f"Unknown storage backend: {backend}")


def get_storage_from_config(config: StorageConfig) -> StorageInterface:
    """Create storage backend from configuration.

    Args:
        config: Storage configuration

    Returns:
        Storage backend instance
    """
    if config.backend == "local":
        return LocalStorage(config)

    elif config.backend in S3_BACKENDS:
        from .s3_storage import S3Storage
        return S3Storage(config)

    else:
        raise ValueError(f"Unknown storage backend: {config.backend}")


def get_storage() -> StorageInterface:
    """Get or create singleton storage instance.

    This is the main entry point for getting storage.
    The instance is cached for reuse.

    Returns:
        Storage backend instance
    """
    global _storage_instance

    if _storage_instance is None:
        _storage_instance = get_storage_from_config(get_storage_config())

    return _storage_instance


def reset_storage():
    """Reset storage singleton (useful for testing)."""
    global _storage_instance
    _storage_instance = None
