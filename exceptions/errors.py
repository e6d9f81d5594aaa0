"""
Custom exception classes for the application.

Every error that reaches a route is an AppError subclass and renders to
the standard {"error": {...}} envelope via to_dict().
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "IMPORT_RUN_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class BadRequestError(AppError):
    """Malformed request body (400)."""

    def __init__(
        self,
        message: str,
        code: str = "BAD_REQUEST",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=400,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DuplicateError(ConflictError):
    """Duplicate resource (409)."""

    def __init__(
        self,
        resource: str,
        field: str,
        value: str
    ):
        super().__init__(
            code=f"{resource.upper()}_{field.upper()}_EXISTS",
            message=f"{resource} with this {field} already exists",
            details={field: value}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


class DatabaseConnectionError(DatabaseError):
    """Supabase could not be reached (503)."""

    def __init__(self, message: str):
        super().__init__(operation="connect", message=message)
        self.code = "DATABASE_CONNECTION_ERROR"
        self.status_code = 503


# ===================
# REQUEST SHAPE ERRORS
# ===================

class NoRowsProvidedError(BadRequestError):
    """Request carried no rows to process."""

    def __init__(self):
        super().__init__(
            code="NO_ROWS_PROVIDED",
            message="No rows provided"
        )


class UnsupportedEntityKindError(BadRequestError):
    """Entity kind is not one the import pipeline handles."""

    def __init__(self, kind: str, valid: list[str]):
        super().__init__(
            code="UNSUPPORTED_ENTITY_KIND",
            message=f"Unsupported import type: {kind}",
            details={"provided": kind, "valid": valid}
        )


# ===================
# STAGING ERRORS
# ===================

class StagedRowNotFoundError(NotFoundError):
    """Staged row not found."""

    def __init__(self, staging_id: str):
        super().__init__(
            resource="Staged row",
            identifier=staging_id,
            code="STAGED_ROW_NOT_FOUND"
        )


# ===================
# IMPORT RUN ERRORS
# ===================

class ImportRunNotFoundError(NotFoundError):
    """Import run not found."""

    def __init__(self, import_run_id: str):
        super().__init__(
            resource="Import run",
            identifier=import_run_id,
            code="IMPORT_RUN_NOT_FOUND"
        )


class ImportRunRequiredError(ValidationError):
    """A continuation batch arrived without its run identifier."""

    def __init__(self):
        super().__init__(
            code="IMPORT_RUN_REQUIRED",
            message="import_run_id is required for batches after the first"
        )


class ImportRunClosedError(ConflictError):
    """Batch or status change targeted a run that already finished."""

    def __init__(self, import_run_id: str, status: str):
        super().__init__(
            code="IMPORT_RUN_CLOSED",
            message=f"Import run is already {status}",
            details={"import_run_id": import_run_id, "status": status}
        )


# ===================
# COMMIT ERRORS
# ===================

class CommitError(AppError):
    """Commit aborted part way; earlier rows stay committed (500)."""

    def __init__(
        self,
        row_number: int,
        message: str,
        committed: Optional[dict] = None
    ):
        super().__init__(
            code="COMMIT_FAILED",
            message=f"Row {row_number}: {message}",
            status_code=500,
            details={"row": row_number, "committed": committed or {}}
        )


# ===================
# FILE PARSER ERRORS
# ===================

class CatalogFileParseError(ValidationError):
    """Uploaded catalog file could not be parsed."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="CATALOG_FILE_PARSE_ERROR",
            message=message,
            details=details
        )
