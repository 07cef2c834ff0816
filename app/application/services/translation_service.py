"""Translation service - admin management of Spanish catalog content."""
from typing import Optional

from ...errors import NotFoundError, ValidationError
from ...infrastructure.repositories import TranslationRepository
from ...infrastructure.repositories.translation_repository import CONTENT_TABLES

CONTENT_TYPES = tuple(CONTENT_TABLES)


def _filled(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def is_translation_complete(title_es: Optional[str], description_es: Optional[str]) -> bool:
    """Complete means both title and description are translated."""
    return _filled(title_es) and _filled(description_es)


def calculate_completion_percentage(title_es: Optional[str], description_es: Optional[str]) -> int:
    """0, 50 or 100 depending on how many of the two fields are translated."""
    filled = sum(1 for value in (title_es, description_es) if _filled(value))
    return filled * 50


def _percentage(part: int, total: int) -> int:
    return round(part / total * 100) if total else 0


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class TranslationService:
    """Service for translation statistics and editing."""

    def __init__(self, translation_repository: TranslationRepository):
        self.translation_repo = translation_repository

    def get_translation_statistics(self) -> dict:
        """Per-type translated counts and overall completion."""
        stats = {}
        total = translated = 0
        for content_type in CONTENT_TYPES:
            counts = self.translation_repo.count(content_type)
            stats[content_type] = {
                "total": counts["total"],
                "translated": counts["translated"],
                "percentage": _percentage(counts["translated"], counts["total"]),
            }
            total += counts["total"]
            translated += counts["translated"]

        stats["overall_completion"] = _percentage(translated, total)
        return stats

    def list_translations(self, content_type: str) -> list[dict]:
        self._check_type(content_type)
        items = self.translation_repo.list_items(content_type)
        for item in items:
            item["is_complete"] = is_translation_complete(item["title_es"], item["description_es"])
            item["completion_percentage"] = calculate_completion_percentage(
                item["title_es"], item["description_es"]
            )
        return items

    def update_translation(
        self,
        content_type: str,
        content_id: str,
        title_es: Optional[str],
        description_es: Optional[str],
        long_description_es: Optional[str] = None
    ) -> dict:
        """Replace the Spanish fields of an item; blank values clear them.

        Raises:
            ValidationError: Unknown content type
            NotFoundError: Unknown item
        """
        self._check_type(content_type)
        updated = self.translation_repo.update(
            content_type,
            content_id,
            _clean(title_es),
            _clean(description_es),
            _clean(long_description_es),
        )
        if not updated:
            raise NotFoundError(content_type.capitalize())
        return self.translation_repo.get(content_type, content_id)

    @staticmethod
    def _check_type(content_type: str) -> None:
        if content_type not in CONTENT_TYPES:
            raise ValidationError(f"Content type must be one of: {', '.join(CONTENT_TYPES)}")
