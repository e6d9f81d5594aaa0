"""
Import run schemas.

One ImportRun spans every physical batch of a logical upload.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from models.base import BaseSchema, TimestampMixin, Pagination


class ImportRunStatus(str, Enum):
    """Import run lifecycle: in_progress → completed | failed."""
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class MigrationStatus(str, Enum):
    """Outcome of committing a run's approved staged rows."""
    MIGRATED = "migrated"
    PARTIAL = "partial"


class ImportRunResponse(BaseSchema, TimestampMixin):
    """Import run with its running totals."""

    import_run_id: str = Field(..., description="Import run UUID")
    import_type: str = Field(..., description="Kind of import (brand, add_supplier, ...)")
    file_name: Optional[str] = Field(None, description="Source file name")
    status: ImportRunStatus = Field(..., description="Lifecycle status")
    rows_processed: int = Field(0, ge=0)
    rows_skipped: int = Field(0, ge=0)
    errors_count: int = Field(0, ge=0)
    error_message: Optional[str] = Field(None, description="Reason given when failed")
    migration_status: Optional[MigrationStatus] = None
    migration_summary: Optional[dict] = None

    @property
    def is_open(self) -> bool:
        return self.status == ImportRunStatus.IN_PROGRESS


class ImportRunListResponse(BaseModel):
    """Page of import runs."""

    data: list[ImportRunResponse]
    pagination: Pagination


class FailRunRequest(BaseModel):
    """Caller-signalled failure of an in-progress run."""

    reason: Optional[str] = Field(None, max_length=2000)
