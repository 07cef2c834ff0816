"""S3-compatible storage implementation (AWS S3, Cloudflare R2, MinIO)."""
from pathlib import Path
from typing import BinaryIO, Optional, Union, Iterator

import boto3
from botocore.exceptions import ClientError

from .base import (
    S3_BACKENDS,
    StorageInterface,
    StorageConfig,
    StorageError,
    FileNotFoundError as StorageFileNotFoundError,
    UploadError,
    DownloadError,
    DeleteError
)
from .local_storage import safe_folder
from ...log import get_logger

logger = get_logger(__name__)


def _error_code(error: ClientError) -> str:
    return error.response.get('Error', {}).get('Code', 'Unknown')


class S3Storage(StorageInterface):
    """S3-compatible storage backend.

    Supports:
    - AWS S3
    - Cloudflare R2 (``endpoint_url`` required, region "auto")
    - MinIO
    - Any S3-compatible API
    """

    def __init__(self, config: StorageConfig, client=None):
        """Initialize S3 storage.

        Args:
            config: Storage configuration with S3 settings
            client: Pre-built boto3 S3 client (mainly for tests)
        """
        if config.backend not in S3_BACKENDS:
            raise ValueError(
                f"S3Storage requires backend in {S3_BACKENDS}, got '{config.backend}'"
            )
        if not config.bucket_name:
            raise ValueError("S3 storage requires a bucket name")

        self.config = config
        self.backend = config.backend
        self.bucket = config.bucket_name

        if client is None:
            client_kwargs = {
                "service_name": "s3",
                "aws_access_key_id": config.access_key,
                "aws_secret_access_key": config.secret_key,
                "region_name": config.region,
            }
            # Custom endpoint for R2/MinIO
            if config.endpoint_url:
                client_kwargs["endpoint_url"] = config.endpoint_url
                client_kwargs["use_ssl"] = config.use_ssl
            client = boto3.client(**client_kwargs)

        self.client = client
        self._ensure_bucket()

    def _ensure_bucket(self):
        """Create bucket if it doesn't exist."""
        try:
            self.client.head_bucket(Bucket=self.bucket)
        except ClientError as e:
            if _error_code(e) not in ('404', 'NoSuchBucket'):
                raise StorageError(f"Cannot access bucket {self.bucket}: {e}")

            logger.info("storage_bucket_create", bucket=self.bucket, backend=self.backend)
            try:
                if self.config.region in ('us-east-1', 'auto'):
                    self.client.create_bucket(Bucket=self.bucket)
                else:
                    self.client.create_bucket(
                        Bucket=self.bucket,
                        CreateBucketConfiguration={
                            'LocationConstraint': self.config.region
                        }
                    )
            except ClientError as create_error:
                raise StorageError(
                    f"Failed to create bucket {self.bucket}: {create_error}"
                )

    def _get_key(self, file_id: str, folder: str) -> str:
        """Get S3 object key."""
        safe_id = Path(file_id).name
        return f"{safe_folder(folder)}/{safe_id}"

    async def upload(
        self,
        file_id: str,
        content: Union[bytes, BinaryIO],
        folder: str = "uploads",
        content_type: Optional[str] = None
    ) -> str:
        """Upload file to S3."""
        key = self._get_key(file_id, folder)

        extra_args = {}
        if content_type:
            extra_args['ContentType'] = content_type

        body = content if isinstance(content, bytes) else content.read()

        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                **extra_args
            )
            return key

        except ClientError as e:
            raise UploadError(f"Failed to upload {file_id}: {e}")

    async def download(self, file_id: str, folder: str = "uploads") -> bytes:
        """Download file from S3."""
        key = self._get_key(file_id, folder)

        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response['Body'].read()
        except ClientError as e:
            if _error_code(e) in ('404', 'NoSuchKey'):
                raise StorageFileNotFoundError(f"File not found: {file_id}")
            raise DownloadError(f"Failed to download {file_id}: {e}")

    async def delete(self, file_id: str, folder: str = "uploads") -> bool:
        """Delete file from S3."""
        key = self._get_key(file_id, folder)

        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if _error_code(e) == 'NoSuchKey':
                return False
            raise DeleteError(f"Failed to delete {file_id}: {e}")

    def exists(self, file_id: str, folder: str = "uploads") -> bool:
        """Check if file exists in S3."""
        key = self._get_key(file_id, folder)

        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if _error_code(e) in ('404', 'NoSuchKey'):
                return False
            raise StorageError(f"Failed to check existence of {file_id}: {e}")

    def get_url(
        self,
        file_id: str,
        folder: str = "uploads",
        expires: Optional[int] = None
    ) -> str:
        """Get presigned URL for file, or the direct URL when expires is None."""
        key = self._get_key(file_id, folder)

        if expires is None:
            # Direct URL (only works for public buckets)
            endpoint = self.config.endpoint_url or f"https://s3.{self.config.region}.amazonaws.com"
            return f"{endpoint.rstrip('/')}/{self.bucket}/{key}"

        try:
            return self.client.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket, 'Key': key},
                ExpiresIn=expires
            )
        except ClientError as e:
            raise StorageError(f"Failed to generate URL for {file_id}: {e}")

    def list_files(self, folder: str = "uploads", prefix: Optional[str] = None) -> Iterator[str]:
        """List files in S3 bucket."""
        folder_prefix = f"{safe_folder(folder)}/"
        list_prefix = folder_prefix + (prefix or "")

        try:
            paginator = self.client.get_paginator('list_objects_v2')
            pages = paginator.paginate(Bucket=self.bucket, Prefix=list_prefix)

            for page in pages:
                for obj in page.get('Contents', []):
                    key = obj['Key']
                    if key.startswith(folder_prefix):
                        file_id = key[len(folder_prefix):]
                        if file_id:
                            yield file_id
        except ClientError as e:
            raise StorageError(f"Failed to list files: {e}")

    async def get_size(self, file_id: str, folder: str = "uploads") -> int:
        """Get file size from S3."""
        key = self._get_key(file_id, folder)

        try:
            response = self.client.head_object(Bucket=self.bucket, Key=key)
            return response['ContentLength']
        except ClientError as e:
            if _error_code(e) in ('404', 'NoSuchKey'):
                raise StorageFileNotFoundError(f"File not found: {file_id}")
            raise StorageError(f"Failed to get size of {file_id}: {e}")
