"""
Business logic services.

Each service handles one domain area.
"""

from services.category_service import CategoryService, get_category_service
from services.product_service import ProductService, get_product_service
from services.storage_service import StorageService, get_storage_service
from services.validation_service import ValidationService, get_validation_service
from services.duplicate_service import DuplicateService, get_duplicate_service
from services.publish_service import PublishService, get_publish_service
from services.import_job_service import ImportJobService, get_import_job_service
from services.enrichment_service import EnrichmentService, get_enrichment_service
from services.template_service import TemplateService, get_template_service
from services.import_session_service import (
    ImportSessionService,
    get_import_session_service,
)

__all__ = [
    "CategoryService",
    "get_category_service",
    "ProductService",
    "get_product_service",
    "StorageService",
    "get_storage_service",
    "ValidationService",
    "get_validation_service",
    "DuplicateService",
    "get_duplicate_service",
    "PublishService",
    "get_publish_service",
    "ImportJobService",
    "get_import_job_service",
    "EnrichmentService",
    "get_enrichment_service",
    "TemplateService",
    "get_template_service",
    "ImportSessionService",
    "get_import_session_service",
]
