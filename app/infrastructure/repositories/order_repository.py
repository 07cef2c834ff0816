"""Order repository - purchases that unlock courses and downloads.

Checkout itself happens elsewhere; this repository records orders and answers
the "has this user bought X" questions other features depend on.
"""
from .base import Repository


class OrderRepository(Repository):
    """Repository for orders and order items."""

    def create(self, user_id: int, items: list[dict], status: str = "pending", currency: str = "USD") -> str:
        """Create an order with its items.

        Args:
            user_id: Buyer
            items: Dicts with ``item_type`` ('course' or 'digital_product'),
                ``item_id``, ``title``, ``price`` and optional ``quantity``
            status: Initial order status
            currency: ISO currency code

        Returns:
            Order UUID
        """
        order_id = self._new_id()
        total = sum(float(item["price"]) * int(item.get("quantity", 1)) for item in items)

        self._execute(
            """INSERT INTO orders (id, user_id, status, total_amount, currency)
               VALUES (?, ?, ?, ?, ?)""",
            (order_id, user_id, status, round(total, 2), currency)
        )
        self._execute_many(
            """INSERT INTO order_items
               (order_id, course_id, digital_product_id, item_type, title, price, quantity)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            [
                (
                    order_id,
                    item["item_id"] if item["item_type"] == "course" else None,
                    item["item_id"] if item["item_type"] == "digital_product" else None,
                    item["item_type"],
                    item["title"],
                    item["price"],
                    int(item.get("quantity", 1)),
                )
                for item in items
            ]
        )
        self._commit()
        return order_id

    def has_purchased_course(self, user_id: int, course_id: str) -> bool:
        """True if a completed order of the user contains the course."""
        row = self._fetchone(
            """SELECT 1 FROM orders o
               JOIN order_items oi ON oi.order_id = o.id
               WHERE o.user_id = ? AND oi.course_id = ? AND o.status = 'completed'
               LIMIT 1""",
            (user_id, course_id)
        )
        return row is not None

    def get_product_purchase(self, user_id: int, product_id: str) -> dict | None:
        """Most recent completed order containing the product, if any."""
        return self._fetchone(
            """SELECT o.id AS order_id, o.created_at AS purchased_at
               FROM orders o
               JOIN order_items oi ON oi.order_id = o.id
               WHERE o.user_id = ? AND oi.digital_product_id = ? AND o.status = 'completed'
               ORDER BY o.created_at DESC
               LIMIT 1""",
            (user_id, product_id)
        )
