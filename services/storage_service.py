"""
Object storage for extracted product images.

Images go to the Supabase storage bucket under a timestamped,
collision-resistant key and are served through their public URL.
"""

import re
import uuid
from datetime import datetime, timezone
from typing import Optional
import structlog

from config import settings, get_admin_client, get_storage_bucket, get_supabase_client
from models.import_job import BulkImageCleanupResponse
from exceptions import StorageError

logger = structlog.get_logger(__name__)

LIST_PAGE_SIZE = 1000

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def build_storage_key(prefix: str, filename: str, now: Optional[datetime] = None) -> str:
    """
    Key for one uploaded image.

    bulk-upload/20250301T101500Z-3f2a...-image1.png
    """
    now = now or datetime.now(timezone.utc)
    safe_name = _UNSAFE_KEY_CHARS.sub("_", filename).strip("_") or "image"
    stamp = now.strftime("%Y%m%dT%H%M%SZ")
    return f"{prefix.strip('/')}/{stamp}-{uuid.uuid4().hex}-{safe_name}"


class StorageService:
    """Upload, resolve and clean up product images."""

    def __init__(self):
        self.db = get_supabase_client()
        self.prefix = settings.storage_image_prefix

    def _bucket(self, admin: bool = False):
        client = None
        if admin:
            client = get_admin_client()
        return get_storage_bucket(client or self.db)

    def upload_image(self, filename: str, data: bytes, content_type: str) -> str:
        """
        Store image bytes and return the public URL.

        Raises:
            StorageError: If the upload fails
        """
        key = build_storage_key(self.prefix, filename)

        try:
            bucket = self._bucket()
            bucket.upload(
                path=key,
                file=data,
                file_options={"content-type": content_type, "upsert": "true"},
            )
            url = bucket.get_public_url(key)
        except Exception as e:
            logger.error("storage_upload_failed", key=key, error=str(e))
            raise StorageError(f"Upload failed: {e}", key=key)

        logger.debug("image_uploaded", key=key, size=len(data))
        return url

    def get_public_url(self, key: str) -> str:
        return self._bucket().get_public_url(key)

    def cleanup_bulk_images(self) -> BulkImageCleanupResponse:
        """
        Remove every object under the bulk image prefix.

        Lists one page at a time; a page that fails to delete is counted
        and the remaining pages are still attempted.

        Raises:
            StorageError: If listing fails
        """
        bucket = self._bucket(admin=True)
        deleted = 0
        failed = 0
        offset = 0

        logger.info("bulk_image_cleanup_started", prefix=self.prefix)

        while True:
            try:
                page = bucket.list(
                    self.prefix,
                    {"limit": LIST_PAGE_SIZE, "offset": offset},
                )
            except Exception as e:
                logger.error("storage_list_failed", prefix=self.prefix, error=str(e))
                raise StorageError(f"List failed: {e}", key=self.prefix)

            if not page:
                break

            keys = [f"{self.prefix}/{item['name']}" for item in page if item.get("name")]
            try:
                bucket.remove(keys)
                deleted += len(keys)
            except Exception as e:
                logger.warning(
                    "storage_remove_failed",
                    count=len(keys),
                    error=str(e)
                )
                failed += len(keys)
                # Failed objects stay listed; skip past them
                offset += len(page)

            if len(page) < LIST_PAGE_SIZE:
                break

        logger.info(
            "bulk_image_cleanup_completed",
            prefix=self.prefix,
            deleted=deleted,
            failed=failed,
        )
        return BulkImageCleanupResponse(
            prefix=self.prefix,
            deleted_count=deleted,
            error_count=failed,
        )


_storage_service: Optional[StorageService] = None

def get_storage_service() -> StorageService:
    """Get or create StorageService instance."""
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service
