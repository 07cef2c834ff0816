"""Download service - purchase-checked, limited downloads of digital products."""
from typing import Optional

from ...errors import AuthorizationError, NotFoundError, ValidationError
from ...infrastructure.repositories import OrderRepository, ProductRepository
from ...log import get_logger
from .upload_service import UploadService

logger = get_logger(__name__)

DEFAULT_PRODUCT_FOLDER = "products"


class DownloadService:
    """Grants download links for purchased digital products.

    Every granted link is recorded in download_logs; ``download_limit``
    caps the number of downloads per purchase (NULL means unlimited).
    """

    def __init__(
        self,
        product_repository: ProductRepository,
        order_repository: OrderRepository,
        upload_service: UploadService
    ):
        self.product_repo = product_repository
        self.order_repo = order_repository
        self.uploads = upload_service

    def get_download(
        self,
        user_id: int,
        product_id: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> dict:
        """Check access, log the download and return a signed URL.

        Returns:
            Dict with url and downloads_remaining (None when unlimited)

        Raises:
            NotFoundError: Unknown product
            AuthorizationError: Not purchased or download limit reached
            ValidationError: Product has no file attached
        """
        product = self.product_repo.get_by_id(product_id)
        if not product:
            raise NotFoundError("Product")

        purchase = self.order_repo.get_product_purchase(user_id, product_id)
        if not purchase:
            raise AuthorizationError("You must purchase this product to download it")

        if not product.get("file_key"):
            raise ValidationError("This product has no downloadable file")

        limit = product.get("download_limit")
        order_id = purchase["order_id"]
        if limit is not None and self.product_repo.count_downloads(user_id, product_id, order_id) >= limit:
            raise AuthorizationError(f"Download limit of {limit} reached for this product")

        folder = product.get("file_folder") or DEFAULT_PRODUCT_FOLDER
        url = self.uploads.get_download_url(product["file_key"], folder)

        if not self.product_repo.log_download(
            user_id, product_id, order_id, ip_address, user_agent, limit=limit
        ):
            raise AuthorizationError(f"Download limit of {limit} reached for this product")
        logger.info("product_downloaded", user_id=user_id, product_id=product_id)

        remaining = None
        if limit is not None:
            remaining = max(limit - self.product_repo.count_downloads(user_id, product_id, order_id), 0)
        return {"url": url, "downloads_remaining": remaining}
