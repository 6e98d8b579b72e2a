"""
Category service - read-only access to catalog categories.

See STANDARDS_LOGGING.md for logging patterns.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from models.product import CategoryResponse
from exceptions import CategoryNotFoundError, DatabaseError

logger = structlog.get_logger(__name__)


class CategoryService:
    """Active categories, used for validation and hint resolution."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "categories"

    def list_active(self) -> list[CategoryResponse]:
        """
        Get all active categories ordered by name.

        Returns:
            List of CategoryResponse
        """
        try:
            result = (
                self.db.table(self.table)
                .select("id, name, icon")
                .eq("is_active", True)
                .order("name")
                .execute()
            )
            categories = [CategoryResponse(**row) for row in result.data]
            logger.debug("categories_retrieved", count=len(categories))
            return categories

        except Exception as e:
            logger.error("get_categories_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_by_id(self, category_id: str) -> CategoryResponse:
        """
        Get one active category.

        Raises:
            CategoryNotFoundError: If it does not exist or is inactive
        """
        for category in self.list_active():
            if category.id == category_id:
                return category
        raise CategoryNotFoundError(category_id)


_category_service: Optional[CategoryService] = None

def get_category_service() -> CategoryService:
    """Get or create CategoryService instance."""
    global _category_service
    if _category_service is None:
        _category_service = CategoryService()
    return _category_service
