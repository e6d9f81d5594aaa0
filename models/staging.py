"""
Staging ledger schemas.

Approval is tri-state on the is_approved column:
None = pending, True = approved, False = rejected.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from models.base import BaseSchema, Pagination
from models.catalog import EntityConfig
from models.import_run import ImportRunStatus


class ApprovalFilter(str, Enum):
    """Listing filter over the approval tri-state."""
    ALL = "all"
    APPROVED = "approved"
    PENDING = "pending"
    REJECTED = "rejected"


class ApprovalState(str, Enum):
    """Reviewer decision for one staged row."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class StagedRowResponse(BaseSchema):
    """A staged row awaiting (or past) review."""

    staging_id: str = Field(..., description="Staging row UUID")
    import_run_id: Optional[str] = Field(None, description="Owning import run")
    row_index: int = Field(..., ge=0, description="Position in the original upload")
    name: str = Field(..., description="Entity name as submitted (trimmed)")
    normalized_name: Optional[str] = None
    raw_data: dict[str, Any] = Field(default_factory=dict, description="Original row payload")
    matched_entity_id: Optional[str] = Field(
        None,
        description="Existing entity the reviewer confirmed, if any"
    )
    is_approved: Optional[bool] = None
    imported_at: Optional[datetime] = None

    @property
    def state(self) -> ApprovalState:
        if self.is_approved is None:
            return ApprovalState.PENDING
        return ApprovalState.APPROVED if self.is_approved else ApprovalState.REJECTED

    @classmethod
    def from_row(cls, config: EntityConfig, row: dict[str, Any]) -> "StagedRowResponse":
        """Build from a staging table row."""
        return cls(
            staging_id=str(row["staging_id"]),
            import_run_id=row.get("import_run_id"),
            row_index=row.get("row_index") or 0,
            name=row.get(config.name_column) or "",
            normalized_name=row.get("normalized_name"),
            raw_data=row.get("raw_data") or {},
            matched_entity_id=row.get("matched_entity_id"),
            is_approved=row.get("is_approved"),
            imported_at=row.get("imported_at"),
        )


class StagedRowListResponse(BaseModel):
    """Page of staged rows."""

    data: list[StagedRowResponse]
    pagination: Pagination


# ===================
# INGESTION
# ===================

class ConfirmedMatch(BaseModel):
    """Reviewer decision from the validation screen for one row."""

    use_existing: bool = Field(False, description="Link to an existing entity")
    existing_entity_id: Optional[str] = Field(None, description="Chosen entity id")
    existing_entity_name: Optional[str] = Field(None, description="Chosen entity name")


class IngestRequest(BaseModel):
    """
    One physical batch of a (possibly multi-batch) upload.

    The first batch omits import_run_id and sets is_first_batch; every
    later batch passes back the import_run_id returned by the first.
    """

    rows: list[Any] = Field(default_factory=list, description="Raw row objects")
    confirmed_matches: dict[int, ConfirmedMatch] = Field(
        default_factory=dict,
        description="Reviewer overrides keyed by row index"
    )
    file_name: Optional[str] = Field(None, max_length=255)
    is_first_batch: bool = True
    is_last_batch: bool = True
    import_run_id: Optional[str] = None
    batch_offset: int = Field(
        0,
        ge=0,
        description="Index of this batch's first row within the whole upload"
    )


class IngestResponse(BaseModel):
    """Outcome of staging one batch."""

    import_run_id: str
    status: ImportRunStatus
    processed: int = 0
    staged: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)


# ===================
# APPROVAL
# ===================

class ApproveRequest(BaseModel):
    """Approve or reject a single staged row."""

    type: str = Field(..., description="Entity kind tag (brands, suppliers, ...)")
    staging_id: str = Field(..., min_length=1)
    is_approved: bool


class BulkApproveRequest(BaseModel):
    """Approve or reject many staged rows, optionally within one run."""

    type: str = Field(..., description="Entity kind tag (brands, suppliers, ...)")
    staging_ids: list[str] = Field(..., min_length=1)
    is_approved: bool
    import_run_id: Optional[str] = None


class ApprovalResponse(BaseModel):
    """Rows changed by an approval call."""

    success: bool = True
    updated: int
    data: list[StagedRowResponse] = Field(default_factory=list)
