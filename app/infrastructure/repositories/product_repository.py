"""Digital product repository - products and their download log."""
from typing import Optional

from .base import Repository

CREATE_FIELDS = (
    "title", "slug", "description", "long_description", "price", "product_type",
    "file_key", "file_folder", "file_size_mb", "preview_url", "image_url",
    "download_limit", "is_published",
    "title_es", "description_es", "long_description_es",
)


class ProductRepository(Repository):
    """Repository for digital products (PDFs, audio, video, ebooks)."""

    def create(self, data: dict) -> str:
        """Insert a product; unknown keys in data are ignored.

        Returns:
            Product UUID
        """
        product_id = data.get("id") or self._new_id()
        fields = {k: data[k] for k in CREATE_FIELDS if k in data}
        if "is_published" in fields:
            fields["is_published"] = 1 if fields["is_published"] else 0

        columns = ["id", *fields.keys()]
        placeholders = ", ".join("?" for _ in columns)
        self._execute(
            f"INSERT INTO digital_products ({', '.join(columns)}) VALUES ({placeholders})",
            (product_id, *fields.values())
        )
        self._commit()
        return product_id

    def get_by_id(self, product_id: str, published_only: bool = False) -> dict | None:
        sql = "SELECT * FROM digital_products WHERE id = ?"
        if published_only:
            sql += " AND is_published = 1"
        return self._decode(self._fetchone(sql, (product_id,)))

    def list_published(
        self,
        product_type: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> tuple[list[dict], int]:
        """List published products, newest first.

        Returns:
            Tuple of (products, total matching)
        """
        where = "is_published = 1"
        params: tuple = ()
        if product_type:
            where += " AND product_type = ?"
            params = (product_type,)

        total = self._count(f"SELECT COUNT(*) AS count FROM digital_products WHERE {where}", params)
        rows = self._fetchall(
            f"""SELECT * FROM digital_products WHERE {where}
                ORDER BY created_at DESC, title ASC
                LIMIT ? OFFSET ?""",
            (*params, limit, offset)
        )
        return [self._decode(row) for row in rows], total

    # Download log

    def count_downloads(self, user_id: int, product_id: str, order_id: Optional[str] = None) -> int:
        """Number of logged downloads, optionally scoped to one order."""
        sql = "SELECT COUNT(*) AS count FROM download_logs WHERE user_id = ? AND digital_product_id = ?"
        params: tuple = (user_id, product_id)
        if order_id:
            sql += " AND order_id = ?"
            params += (order_id,)
        return self._count(sql, params)

    def log_download(
        self,
        user_id: int,
        product_id: str,
        order_id: Optional[str],
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        limit: Optional[int] = None
    ) -> bool:
        """Record a download unless the purchase already used up ``limit``.

        The count and the insert are one statement, so concurrent requests
        cannot both take the last remaining download.

        Returns:
            True if the download was recorded
        """
        cursor = self._execute(
            """INSERT INTO download_logs
               (user_id, digital_product_id, order_id, ip_address, user_agent, downloaded_at)
               SELECT ?, ?, ?, ?, ?, ?
               WHERE ? IS NULL OR (
                   SELECT COUNT(*) FROM download_logs
                   WHERE user_id = ? AND digital_product_id = ? AND order_id IS ?
               ) < ?""",
            (user_id, product_id, order_id, ip_address, user_agent, self._now(),
             limit, user_id, product_id, order_id, limit)
        )
        self._commit()
        return cursor.rowcount > 0

    @staticmethod
    def _decode(product: dict | None) -> dict | None:
        if product is not None:
            product["is_published"] = bool(product.get("is_published"))
        return product
