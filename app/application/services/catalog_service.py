"""Catalog service - localized listing and detail of courses, products and events."""
from typing import Optional

from ... import config
from ...errors import NotFoundError, ValidationError
from ...i18n.content import localize_course, localize_event, localize_product
from ...i18n.currency import format_currency
from ...i18n.dates import format_datetime, format_datetime_long
from ...infrastructure.repositories import (
    CourseRepository,
    EventRepository,
    ProductRepository,
    ReviewRepository,
)
from ...infrastructure.repositories.course_repository import curriculum_lessons

MAX_LIMIT = 50

# Storage location of the downloadable file is never exposed
PRIVATE_PRODUCT_FIELDS = ("file_key", "file_folder")


def _check_pagination(limit: int, offset: int) -> None:
    if not 1 <= limit <= MAX_LIMIT:
        raise ValidationError(f"Limit must be between 1 and {MAX_LIMIT}")
    if offset < 0:
        raise ValidationError("Offset must be 0 or greater")


def _page(items: list[dict], total: int, limit: int, offset: int) -> dict:
    return {
        "items": items,
        "total": total,
        "limit": limit,
        "offset": offset,
        "has_more": offset + len(items) < total,
    }


class CatalogService:
    """Service for the public catalog.

    All methods take the locale to render in; translated fields fall back to
    English when a translation is missing.
    """

    def __init__(
        self,
        course_repository: CourseRepository,
        product_repository: ProductRepository,
        event_repository: EventRepository,
        review_repository: Optional[ReviewRepository] = None
    ):
        self.course_repo = course_repository
        self.product_repo = product_repository
        self.event_repo = event_repository
        self.review_repo = review_repository

    # =========================================================================
    # Courses
    # =========================================================================

    def list_courses(
        self,
        locale: str,
        level: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        limit: int = 20,
        offset: int = 0
    ) -> dict:
        _check_pagination(limit, offset)
        if min_price is not None and max_price is not None and min_price > max_price:
            raise ValidationError("Minimum price cannot be greater than maximum price")

        courses, total = self.course_repo.list_published(level, min_price, max_price, limit, offset)
        items = [self._course_summary(course, locale) for course in courses]
        return _page(items, total, limit, offset)

    def get_course(self, course_id: str, locale: str) -> dict:
        course = self.course_repo.get_by_id(course_id, published_only=True)
        if not course:
            raise NotFoundError("Course")
        return self._course_detail(course, locale)

    def get_course_by_slug(self, slug: str, locale: str) -> dict:
        course = self.course_repo.get_by_slug(slug)
        if not course:
            raise NotFoundError("Course")
        return self._course_detail(course, locale)

    def _course_summary(self, course: dict, locale: str) -> dict:
        item = localize_course(course, locale)
        item.pop("curriculum", None)
        item["price_formatted"] = self._price(course["price"], locale)
        return item

    def _course_detail(self, course: dict, locale: str) -> dict:
        item = localize_course(course, locale)
        item["price_formatted"] = self._price(course["price"], locale)
        item["lessons"] = curriculum_lessons(course["curriculum"])
        if self.review_repo is not None:
            item["review_stats"] = self.review_repo.get_stats(course["id"])
        return item

    # =========================================================================
    # Digital Products
    # =========================================================================

    def list_products(
        self,
        locale: str,
        product_type: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> dict:
        _check_pagination(limit, offset)
        products, total = self.product_repo.list_published(product_type, limit, offset)
        items = [self._product(product, locale) for product in products]
        return _page(items, total, limit, offset)

    def get_product(self, product_id: str, locale: str) -> dict:
        product = self.product_repo.get_by_id(product_id, published_only=True)
        if not product:
            raise NotFoundError("Product")
        return self._product(product, locale)

    def _product(self, product: dict, locale: str) -> dict:
        item = localize_product(product, locale)
        for field in PRIVATE_PRODUCT_FIELDS:
            item.pop(field, None)
        item["price_formatted"] = self._price(product["price"], locale)
        return item

    # =========================================================================
    # Events
    # =========================================================================

    def list_events(
        self,
        locale: str,
        city: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> dict:
        """Upcoming published events, soonest first."""
        _check_pagination(limit, offset)
        events, total = self.event_repo.list_upcoming(city, limit, offset)
        items = [self._event(event, locale) for event in events]
        return _page(items, total, limit, offset)

    def get_event(self, event_id: str, locale: str) -> dict:
        event = self.event_repo.get_by_id(event_id, published_only=True)
        if not event:
            raise NotFoundError("Event")
        item = self._event(event, locale)
        item["event_date_long"] = format_datetime_long(event["event_date"], locale)
        return item

    def _event(self, event: dict, locale: str) -> dict:
        item = localize_event(event, locale)
        item["price_formatted"] = self._price(event["price"], locale)
        item["event_date_formatted"] = format_datetime(event["event_date"], locale)
        item["is_sold_out"] = (event.get("available_spots") or 0) <= 0
        return item

    @staticmethod
    def _price(amount, locale: str) -> str:
        return format_currency(amount, locale, config.CATALOG_CURRENCY)
