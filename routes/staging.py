"""
Staging API routes.

Endpoints for reviewing staged rows and committing the approved ones.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.catalog import resolve_import_kind
from models.staging import (
    ApprovalFilter,
    StagedRowListResponse,
    ApproveRequest,
    BulkApproveRequest,
    ApprovalResponse,
)
from models.commit import MigrateRequest, MigrateResponse
from services.staging_service import get_staging_service
from services.commit_service import get_commit_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/staging", tags=["Staging"])


def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# REVIEW
# ===================

@router.post("/approve", response_model=ApprovalResponse)
async def approve_row(request: ApproveRequest):
    """
    Approve or reject a single staged row.

    Returns 404 if the staging id is unknown.
    """
    try:
        kind = resolve_import_kind(request.type)
        row = get_staging_service(kind).set_approval(request.staging_id, request.is_approved)
        return ApprovalResponse(updated=1, data=[row])

    except Exception as e:
        return handle_error(e)


@router.post("/bulk-approve", response_model=ApprovalResponse)
async def bulk_approve_rows(request: BulkApproveRequest):
    """
    Approve or reject many staged rows.

    With import_run_id, only listed rows of that run change.
    """
    try:
        kind = resolve_import_kind(request.type)
        rows = get_staging_service(kind).bulk_set_approval(
            request.staging_ids,
            request.is_approved,
            import_run_id=request.import_run_id
        )
        return ApprovalResponse(updated=len(rows), data=rows)

    except Exception as e:
        return handle_error(e)


# ===================
# STAGED COMMIT
# ===================

@router.post("/migrate", response_model=MigrateResponse)
async def migrate_approved_rows(request: MigrateRequest):
    """
    Commit every approved staged row into the catalog.

    Rows that fail stay in staging and are listed in errors; committed
    rows are removed from staging.
    """
    try:
        kind = resolve_import_kind(request.type)
        return get_commit_service().migrate_approved(kind, request.import_run_id)

    except Exception as e:
        return handle_error(e)


# ===================
# LISTING
# ===================

@router.get("/{kind}", response_model=StagedRowListResponse)
async def list_staged_rows(
    kind: str,
    approval: ApprovalFilter = Query(ApprovalFilter.ALL, alias="filter", description="Approval state"),
    import_run_id: Optional[str] = Query(None, description="Filter by import run"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: Optional[int] = Query(None, ge=1, le=500, description="Rows per page")
):
    """
    List staged rows of one kind, newest first.
    """
    try:
        entity_kind = resolve_import_kind(kind)
        return get_staging_service(entity_kind).list_rows(
            approval=approval,
            import_run_id=import_run_id,
            page=page,
            limit=limit
        )

    except Exception as e:
        return handle_error(e)
