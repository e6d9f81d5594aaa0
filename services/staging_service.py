"""
Staging ledger: incoming rows held for review before they are committed.

Each importable kind has its own staging table (staging_brands,
staging_suppliers, ...). Rows carry a back-reference to their import run
and a tri-state approval flag (None pending, True approved, False rejected).
"""

from typing import Optional
from datetime import datetime, timezone
import structlog

from config import get_supabase_client, settings
from models.base import Pagination
from models.catalog import EntityKind, EntityConfig, get_entity_config
from models.import_run import ImportRunResponse
from models.staging import (
    ApprovalFilter,
    StagedRowResponse,
    StagedRowListResponse,
    IngestRequest,
    IngestResponse,
)
from services.import_run_service import get_import_run_service
from services.match_service import read_name, UnreadableRowError
from utils.text_utils import normalize_name
from exceptions import (
    DatabaseError,
    NoRowsProvidedError,
    ImportRunRequiredError,
    StagedRowNotFoundError,
    BadRequestError,
)

logger = structlog.get_logger(__name__)


class StagingService:
    """
    Staging ledger for one importable entity kind.

    Handles:
    - Staging batches of incoming rows under an import run
    - Listing staged rows by approval state
    - Approving or rejecting rows, one at a time or in bulk
    - Handing approved rows to the commit engine and removing them after
    """

    def __init__(self, kind: EntityKind):
        self.db = get_supabase_client()
        self.config: EntityConfig = get_entity_config(kind)
        if not self.config.importable:
            raise BadRequestError(f"{self.config.kind.value} rows cannot be staged")
        self.table = self.config.staging_table
        self.import_runs = get_import_run_service()

    # ===================
    # INGESTION
    # ===================

    def stage_batch(self, request: IngestRequest) -> IngestResponse:
        """
        Stage one physical batch of an upload.

        The first batch opens an import run; later batches must pass the
        run id back. Rows with an empty name are skipped. A failed insert
        is reported as "Row N: message" and the batch carries on.

        Args:
            request: Batch rows, reviewer overrides and run bookkeeping

        Returns:
            IngestResponse with the run id and per-batch counts

        Raises:
            NoRowsProvidedError: If the batch has no rows
            ImportRunRequiredError: If a later batch omits import_run_id
            ImportRunNotFoundError: If import_run_id names no run
            ImportRunClosedError: If the run is already completed or failed
        """
        if not request.rows:
            raise NoRowsProvidedError()
        if not request.is_first_batch and not request.import_run_id:
            raise ImportRunRequiredError()

        if request.import_run_id:
            run = self.import_runs.get_open(request.import_run_id)
        else:
            run = self.import_runs.start_run(self.config.import_type, request.file_name)

        staged = 0
        skipped = 0
        errors: list[str] = []

        for position, row in enumerate(request.rows):
            row_index = request.batch_offset + position

            try:
                name = read_name(row, self.config.name_column)
            except UnreadableRowError as e:
                errors.append(f"Row {row_index + 1}: {e}")
                continue

            if not name:
                skipped += 1
                continue

            try:
                self._insert_row(run, row_index, name, row, request)
                staged += 1
            except DatabaseError as e:
                errors.append(f"Row {row_index + 1}: {e.message}")

        run = self.import_runs.record_batch(
            run,
            processed=len(request.rows),
            skipped=skipped,
            errors=len(errors),
            is_last_batch=request.is_last_batch
        )

        logger.info(
            "batch_staged",
            kind=self.config.kind.value,
            import_run_id=run.import_run_id,
            batch_offset=request.batch_offset,
            staged=staged,
            skipped=skipped,
            errors=len(errors)
        )

        return IngestResponse(
            import_run_id=run.import_run_id,
            status=run.status,
            processed=len(request.rows),
            staged=staged,
            skipped=skipped,
            errors=errors
        )

    def _insert_row(
        self,
        run: ImportRunResponse,
        row_index: int,
        name: str,
        row: dict,
        request: IngestRequest
    ) -> None:
        matched_entity_id = None
        confirmed = request.confirmed_matches.get(row_index)
        if confirmed and confirmed.use_existing and confirmed.existing_entity_id:
            matched_entity_id = confirmed.existing_entity_id

        data = {
            "import_run_id": run.import_run_id,
            "row_index": row_index,
            self.config.name_column: name,
            "normalized_name": normalize_name(name),
            "raw_data": dict(row),
            "matched_entity_id": matched_entity_id,
            "is_approved": None,
            "imported_at": datetime.now(timezone.utc).isoformat(),
        }

        try:
            self.db.table(self.table).insert(data).execute()
        except Exception as e:
            logger.error(
                "stage_row_failed",
                table=self.table,
                row_index=row_index,
                error=str(e)
            )
            raise DatabaseError("insert", str(e), {"table": self.table})

    # ===================
    # LISTING
    # ===================

    def list_rows(
        self,
        approval: ApprovalFilter = ApprovalFilter.ALL,
        import_run_id: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None
    ) -> StagedRowListResponse:
        """
        Get staged rows, newest first.

        Args:
            approval: Approval state filter
            import_run_id: Only rows of this run
            page: Page number (1-indexed)
            limit: Rows per page (defaults to STAGING_PAGE_LIMIT)

        Returns:
            StagedRowListResponse with data and pagination
        """
        limit = limit or settings.staging_page_limit

        try:
            query = self.db.table(self.table).select("*", count="exact")

            if approval == ApprovalFilter.APPROVED:
                query = query.eq("is_approved", True)
            elif approval == ApprovalFilter.REJECTED:
                query = query.eq("is_approved", False)
            elif approval == ApprovalFilter.PENDING:
                query = query.is_("is_approved", "null")

            if import_run_id:
                query = query.eq("import_run_id", import_run_id)

            offset = (page - 1) * limit
            query = query.order("imported_at", desc=True)
            query = query.range(offset, offset + limit - 1)

            result = query.execute()

        except Exception as e:
            logger.error("list_staged_rows_failed", table=self.table, error=str(e))
            raise DatabaseError("select", str(e), {"table": self.table})

        rows = [StagedRowResponse.from_row(self.config, row) for row in result.data or []]
        total = result.count or 0

        logger.debug(
            "staged_rows_listed",
            table=self.table,
            filter=approval.value,
            count=len(rows),
            total=total
        )

        return StagedRowListResponse(
            data=rows,
            pagination=Pagination.create(page=page, limit=limit, total=total)
        )

    def get_approved(self, import_run_id: Optional[str] = None) -> list[StagedRowResponse]:
        """
        Get every approved row, oldest upload position first.

        Reads in CATALOG_PAGE_SIZE pages until a short page comes back.
        """
        page_size = settings.catalog_page_size
        rows: list[StagedRowResponse] = []
        start = 0

        try:
            while True:
                query = (
                    self.db.table(self.table)
                    .select("*")
                    .eq("is_approved", True)
                )
                if import_run_id:
                    query = query.eq("import_run_id", import_run_id)

                result = (
                    query.order("row_index")
                    .range(start, start + page_size - 1)
                    .execute()
                )
                page = result.data or []
                rows.extend(StagedRowResponse.from_row(self.config, row) for row in page)

                if len(page) < page_size:
                    break
                start += page_size

        except Exception as e:
            logger.error("get_approved_rows_failed", table=self.table, error=str(e))
            raise DatabaseError("select", str(e), {"table": self.table})

        return rows

    # ===================
    # APPROVAL
    # ===================

    def set_approval(self, staging_id: str, is_approved: bool) -> StagedRowResponse:
        """
        Approve or reject one staged row. Repeating the call is a no-op.

        Raises:
            StagedRowNotFoundError: If no row has this staging id
        """
        try:
            result = (
                self.db.table(self.table)
                .update({"is_approved": is_approved})
                .eq("staging_id", staging_id)
                .execute()
            )

        except Exception as e:
            logger.error("set_approval_failed", table=self.table, staging_id=staging_id, error=str(e))
            raise DatabaseError("update", str(e), {"table": self.table})

        if not result.data:
            raise StagedRowNotFoundError(staging_id)

        logger.info(
            "staged_row_reviewed",
            table=self.table,
            staging_id=staging_id,
            is_approved=is_approved
        )
        return StagedRowResponse.from_row(self.config, result.data[0])

    def bulk_set_approval(
        self,
        staging_ids: list[str],
        is_approved: bool,
        import_run_id: Optional[str] = None
    ) -> list[StagedRowResponse]:
        """
        Approve or reject many staged rows at once.

        With import_run_id, only rows that are both listed and belong to
        that run change. Unknown ids are ignored.

        Returns:
            The rows that were updated
        """
        try:
            query = (
                self.db.table(self.table)
                .update({"is_approved": is_approved})
                .in_("staging_id", staging_ids)
            )
            if import_run_id:
                query = query.eq("import_run_id", import_run_id)

            result = query.execute()

        except Exception as e:
            logger.error("bulk_set_approval_failed", table=self.table, error=str(e))
            raise DatabaseError("update", str(e), {"table": self.table})

        rows = [StagedRowResponse.from_row(self.config, row) for row in result.data or []]

        logger.info(
            "staged_rows_bulk_reviewed",
            table=self.table,
            requested=len(staging_ids),
            updated=len(rows),
            is_approved=is_approved,
            import_run_id=import_run_id
        )
        return rows

    # ===================
    # CLEANUP
    # ===================

    def delete_rows(self, staging_ids: list[str]) -> int:
        """Delete staged rows by id. Returns the number removed."""
        if not staging_ids:
            return 0

        try:
            result = (
                self.db.table(self.table)
                .delete()
                .in_("staging_id", staging_ids)
                .execute()
            )

        except Exception as e:
            logger.error("delete_staged_rows_failed", table=self.table, error=str(e))
            raise DatabaseError("delete", str(e), {"table": self.table})

        deleted = len(result.data or [])
        logger.info("staged_rows_deleted", table=self.table, deleted=deleted)
        return deleted


# Per-kind instances
_services: dict[EntityKind, StagingService] = {}


def get_staging_service(kind: EntityKind) -> StagingService:
    """Get or create the StagingService for a kind."""
    kind = EntityKind(kind)
    if kind not in _services:
        _services[kind] = StagingService(kind)
    return _services[kind]
