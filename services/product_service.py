"""
Product service - catalog reads and writes needed by the import.

See STANDARDS_LOGGING.md for logging patterns.
See STANDARDS_ERRORS.md for error handling patterns.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from models.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
)
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so ilike behaves as case-insensitive equality."""
    return (
        value.replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
    )


class ProductService:
    """
    Catalog product access.

    The catalog belongs to the storefront; the import only looks up
    existing names and inserts/updates rows.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "products"

    # ===================
    # READ OPERATIONS
    # ===================

    def find_active_by_name(self, name: str) -> Optional[ProductResponse]:
        """
        Find an active product with the same name, ignoring case.

        Args:
            name: Product name

        Returns:
            ProductResponse or None if not found
        """
        logger.debug("getting_product_by_name", name=name)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .ilike("name", escape_like(name.strip()))
                .eq("is_active", True)
                .limit(1)
                .execute()
            )

            if not result.data:
                return None

            return ProductResponse(**result.data[0])

        except Exception as e:
            logger.error(
                "get_product_by_name_failed",
                name=name,
                error=str(e)
            )
            raise DatabaseError("select", str(e))

    def list_active_in_category(self, category_id: str) -> list[ProductResponse]:
        """
        Get all active products in one category.

        Args:
            category_id: Category UUID

        Returns:
            List of ProductResponse
        """
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("category_id", category_id)
                .eq("is_active", True)
                .execute()
            )
            return [ProductResponse(**row) for row in result.data]

        except Exception as e:
            logger.error(
                "get_products_in_category_failed",
                category_id=category_id,
                error=str(e)
            )
            raise DatabaseError("select", str(e))

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: ProductCreate) -> ProductResponse:
        """
        Insert a catalog product.

        Args:
            data: Product creation data

        Returns:
            Created ProductResponse

        Raises:
            DatabaseError: If the insert fails
        """
        logger.info("creating_product", name=data.name, category_id=data.category_id)

        try:
            insert_data = data.model_dump(mode="json")

            result = (
                self.db.table(self.table)
                .insert(insert_data)
                .execute()
            )

            product = ProductResponse(**result.data[0])

            logger.info(
                "product_created",
                product_id=product.id,
                name=product.name
            )

            return product

        except Exception as e:
            logger.error(
                "create_product_failed",
                name=data.name,
                error=str(e)
            )
            raise DatabaseError("insert", str(e))

    def update(self, product_id: str, data: ProductUpdate) -> ProductResponse:
        """
        Update an existing product with the provided fields only.

        Args:
            product_id: Product UUID
            data: Fields to update

        Returns:
            Updated ProductResponse

        Raises:
            DatabaseError: If the update fails or matches no row
        """
        logger.info("updating_product", product_id=product_id)

        update_data = data.model_dump(mode="json", exclude_none=True)

        try:
            result = (
                self.db.table(self.table)
                .update(update_data)
                .eq("id", product_id)
                .execute()
            )

            if not result.data:
                raise DatabaseError("update", f"Product {product_id} not found")

            product = ProductResponse(**result.data[0])

            logger.info(
                "product_updated",
                product_id=product_id,
                fields=list(update_data.keys())
            )

            return product

        except DatabaseError:
            raise
        except Exception as e:
            logger.error(
                "update_product_failed",
                product_id=product_id,
                error=str(e)
            )
            raise DatabaseError("update", str(e))


# Singleton instance for convenience
_product_service: Optional[ProductService] = None

def get_product_service() -> ProductService:
    """Get or create ProductService instance."""
    global _product_service
    if _product_service is None:
        _product_service = ProductService()
    return _product_service
