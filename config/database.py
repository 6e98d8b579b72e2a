"""
Supabase connection management.

One cached client serves both the catalog tables (categories, products,
import_jobs, import_items) and the product-image storage bucket.
"""

from supabase import create_client, Client
from functools import lru_cache
from typing import Optional
import structlog

from config.settings import settings

logger = structlog.get_logger(__name__)


class DatabaseError(Exception):
    """Base exception for connection-level failures."""
    pass


class ConnectionError(DatabaseError):
    """Failed to connect to Supabase."""
    pass


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get cached Supabase client instance.

    Call get_supabase_client.cache_clear() to reconnect.

    Returns:
        Client: Supabase client

    Raises:
        ConnectionError: If the client cannot be created or the probe query fails
    """
    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Log partial URL only
        )

        client = create_client(
            settings.supabase_url,
            settings.supabase_key
        )

        client.table("categories").select("id").limit(1).execute()

        logger.info("supabase_connected", status="success")

        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise ConnectionError(f"Failed to connect to Supabase: {e}") from e


def get_admin_client() -> Optional[Client]:
    """
    Get Supabase client with service role key.

    Needed for bucket-wide storage maintenance (bulk image cleanup).

    Returns:
        Client: Admin Supabase client, or None if not configured
    """
    if not settings.supabase_service_key:
        logger.warning("admin_client_not_configured")
        return None

    try:
        return create_client(
            settings.supabase_url,
            settings.supabase_service_key
        )
    except Exception as e:
        logger.error("admin_client_failed", error=str(e))
        return None


def get_storage_bucket(client: Optional[Client] = None):
    """
    Get the storage bucket proxy for product images.

    Args:
        client: Client to use (defaults to the cached anon client)

    Returns:
        Bucket proxy exposing upload/get_public_url/list/remove
    """
    client = client or get_supabase_client()
    return client.storage.from_(settings.storage_bucket)


def check_connection() -> dict:
    """
    Check database connection health.

    Returns:
        dict: Connection status with row counts for the tables the import uses
    """
    try:
        client = get_supabase_client()

        categories = client.table("categories").select("id", count="exact").execute()
        jobs = client.table("import_jobs").select("id", count="exact").execute()

        return {
            "status": "healthy",
            "categories_count": categories.count,
            "import_jobs_count": jobs.count
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e)
        }


