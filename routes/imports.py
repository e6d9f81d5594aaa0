"""
Import API routes.

Endpoints for the upload side of the pipeline:
validate (classify rows), parse (read a file), ingest (stage a batch)
and direct commit (bypass staging).
"""

from fastapi import APIRouter, UploadFile, File
from fastapi.responses import JSONResponse
import structlog

from models.catalog import resolve_import_kind, get_entity_config
from models.matching import ValidateRequest, ValidateResponse
from models.staging import IngestRequest, IngestResponse
from models.commit import CommitRequest, CommitResponse
from services.match_service import get_match_service
from services.staging_service import get_staging_service
from services.commit_service import get_commit_service
from parsers.catalog_file_parser import parse_catalog_file
from exceptions import AppError, NoRowsProvidedError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/import", tags=["Import"])


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
# DIRECT COMMIT
# ===================

# Declared before /{kind} so "commit" is not read as a kind
@router.post("/commit", response_model=CommitResponse)
async def commit_rows(request: CommitRequest):
    """
    Commit rows straight into the catalog.

    Upserts each entity by name, then get-or-creates and links the
    entities named in its list columns. Stops at the first row that
    fails; rows before it stay committed.

    Returns:
        CommitResponse with inserted, updated, linked and skipped counts
    """
    try:
        kind = resolve_import_kind(request.type)
        if not request.rows:
            raise NoRowsProvidedError()

        counts = get_commit_service().commit_rows(kind, request.rows)
        return CommitResponse(**counts.model_dump())

    except Exception as e:
        return handle_error(e)


# ===================
# VALIDATION
# ===================

@router.post("/{kind}/validate", response_model=ValidateResponse)
async def validate_rows(kind: str, request: ValidateRequest):
    """
    Classify incoming rows against the existing catalog.

    Each row gets one verdict: exact, first-token, fuzzy, new or invalid,
    with the suggested action. Nothing is written.

    With metadata_only, returns just the catalog (and, for brands, the
    category and sub-category lists) for the manual override screen.
    """
    try:
        entity_kind = resolve_import_kind(kind)
        if not request.rows and not request.metadata_only:
            raise NoRowsProvidedError()

        return get_match_service().validate_rows(
            entity_kind,
            request.rows,
            metadata_only=request.metadata_only
        )

    except Exception as e:
        return handle_error(e)


@router.post("/{kind}/parse")
async def parse_file(kind: str, file: UploadFile = File(..., description="CSV or XLSX file")):
    """
    Read an uploaded CSV or XLSX file into row objects.

    The result can be sent as-is to the validate and ingest endpoints.
    """
    try:
        entity_kind = resolve_import_kind(kind)
        config = get_entity_config(entity_kind)

        contents = await file.read()
        result = parse_catalog_file(
            contents,
            file.filename or "",
            required_column=config.name_column
        )

        return result.to_dict()

    except Exception as e:
        return handle_error(e)


# ===================
# INGESTION
# ===================

@router.post("/{kind}", response_model=IngestResponse)
async def ingest_batch(kind: str, request: IngestRequest):
    """
    Stage one batch of rows for review.

    The first batch opens an import run and returns its id; later
    batches must send that id back. The last batch closes the run.
    Rows with an empty name are skipped; rows that fail to stage are
    reported in errors without failing the batch.
    """
    try:
        entity_kind = resolve_import_kind(kind)
        return get_staging_service(entity_kind).stage_batch(request)

    except Exception as e:
        return handle_error(e)
