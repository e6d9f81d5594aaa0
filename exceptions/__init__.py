"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    BadRequestError,
    ConflictError,
    DuplicateError,
    DatabaseError,
    DatabaseConnectionError,

    # Request shape
    NoRowsProvidedError,
    UnsupportedEntityKindError,

    # Staging
    StagedRowNotFoundError,

    # Import runs
    ImportRunNotFoundError,
    ImportRunRequiredError,
    ImportRunClosedError,

    # Commit
    CommitError,

    # File parser
    CatalogFileParseError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "BadRequestError",
    "ConflictError",
    "DuplicateError",
    "DatabaseError",
    "DatabaseConnectionError",

    # Request shape
    "NoRowsProvidedError",
    "UnsupportedEntityKindError",

    # Staging
    "StagedRowNotFoundError",

    # Import runs
    "ImportRunNotFoundError",
    "ImportRunRequiredError",
    "ImportRunClosedError",

    # Commit
    "CommitError",

    # File parser
    "CatalogFileParseError",
]
