"""
Custom exceptions module.

Import everything from here rather than from exceptions.errors.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    ExternalServiceError,
    DatabaseError,

    # Import jobs / sessions
    ImportJobNotFoundError,
    ImportSessionNotFoundError,
    DraftRecordNotFoundError,
    CategoryNotFoundError,
    DuplicateUploadError,

    # Parsing / validation
    WorkbookReadError,
    InvalidExchangeRateError,
    InvalidStatusTransitionError,
    InvalidResolutionError,

    # Collaborators
    StorageError,
    EnrichmentError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "ExternalServiceError",
    "DatabaseError",

    # Import jobs / sessions
    "ImportJobNotFoundError",
    "ImportSessionNotFoundError",
    "DraftRecordNotFoundError",
    "CategoryNotFoundError",
    "DuplicateUploadError",

    # Parsing / validation
    "WorkbookReadError",
    "InvalidExchangeRateError",
    "InvalidStatusTransitionError",
    "InvalidResolutionError",

    # Collaborators
    "StorageError",
    "EnrichmentError",
]
