"""
Import run API routes.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.base import Pagination
from models.import_run import (
    ImportRunResponse,
    ImportRunListResponse,
    ImportRunStatus,
    FailRunRequest,
)
from services.import_run_service import get_import_run_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/import-runs", tags=["Import Runs"])


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


@router.get("", response_model=ImportRunListResponse)
async def list_import_runs(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(50, ge=1, le=200, description="Items per page"),
    import_type: Optional[str] = Query(None, description="Filter by import type"),
    status: Optional[ImportRunStatus] = Query(None, description="Filter by status")
):
    """
    List import runs, newest first.
    """
    try:
        runs, total = get_import_run_service().get_all(
            page=page,
            page_size=limit,
            import_type=import_type,
            status=status
        )
        return ImportRunListResponse(
            data=runs,
            pagination=Pagination.create(page=page, limit=limit, total=total)
        )

    except Exception as e:
        return handle_error(e)


@router.get("/{import_run_id}", response_model=ImportRunResponse)
async def get_import_run(import_run_id: str):
    """
    Get a single import run with its running totals.
    """
    try:
        return get_import_run_service().get_by_id(import_run_id)

    except Exception as e:
        return handle_error(e)


@router.post("/{import_run_id}/fail", response_model=ImportRunResponse)
async def fail_import_run(import_run_id: str, request: Optional[FailRunRequest] = None):
    """
    Mark an in-progress run as failed.

    Used by the uploader when it gives up part way through a multi-batch
    upload. Returns 409 if the run already finished.
    """
    try:
        reason = request.reason if request else None
        return get_import_run_service().mark_failed(import_run_id, reason)

    except Exception as e:
        return handle_error(e)
