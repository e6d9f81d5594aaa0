"""
Import run tracker.

One import run spans every physical batch of a logical upload. The first
batch opens it, each batch adds to its counters, the last batch closes it.
"""

from typing import Optional
from datetime import datetime, timezone
import structlog

from config import get_supabase_client
from models.import_run import ImportRunResponse, ImportRunStatus, MigrationStatus
from exceptions import DatabaseError, ImportRunNotFoundError, ImportRunClosedError

logger = structlog.get_logger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ImportRunService:
    """
    Service for import run lifecycle: in_progress → completed | failed.

    Handles:
    - Opening a run on the first batch
    - Accumulating per-batch counters
    - Closing (completed) or failing a run
    - Recording the outcome of a staged commit
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "import_runs"

    # ===================
    # READ OPERATIONS
    # ===================

    def get_by_id(self, import_run_id: str) -> ImportRunResponse:
        """
        Get a single import run.

        Raises:
            ImportRunNotFoundError: If the run doesn't exist
        """
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("import_run_id", import_run_id)
                .limit(1)
                .execute()
            )

        except Exception as e:
            logger.error("get_import_run_failed", import_run_id=import_run_id, error=str(e))
            raise DatabaseError("select", str(e), {"table": self.table})

        if not result.data:
            raise ImportRunNotFoundError(import_run_id)

        return ImportRunResponse.model_validate(result.data[0])

    def get_all(
        self,
        page: int = 1,
        page_size: int = 50,
        import_type: Optional[str] = None,
        status: Optional[ImportRunStatus] = None
    ) -> tuple[list[ImportRunResponse], int]:
        """
        Get import runs, newest first.

        Args:
            page: Page number (1-indexed)
            page_size: Items per page
            import_type: Filter by import type
            status: Filter by lifecycle status

        Returns:
            Tuple of (runs list, total count)
        """
        try:
            query = self.db.table(self.table).select("*", count="exact")

            if import_type:
                query = query.eq("import_type", import_type)
            if status:
                query = query.eq("status", status.value)

            offset = (page - 1) * page_size
            query = query.order("created_at", desc=True)
            query = query.range(offset, offset + page_size - 1)

            result = query.execute()

        except Exception as e:
            logger.error("get_import_runs_failed", error=str(e))
            raise DatabaseError("select", str(e), {"table": self.table})

        runs = [ImportRunResponse.model_validate(row) for row in result.data or []]
        return runs, result.count or 0

    def get_open(self, import_run_id: str) -> ImportRunResponse:
        """
        Get a run that still accepts batches.

        Raises:
            ImportRunNotFoundError: If the run doesn't exist
            ImportRunClosedError: If the run is completed or failed
        """
        run = self.get_by_id(import_run_id)
        if not run.is_open:
            raise ImportRunClosedError(import_run_id, run.status.value)
        return run

    # ===================
    # LIFECYCLE
    # ===================

    def start_run(self, import_type: str, file_name: Optional[str] = None) -> ImportRunResponse:
        """
        Open a new in_progress run with zeroed counters.

        Args:
            import_type: Kind of import (brand, add_supplier, ...)
            file_name: Source file name, if known

        Returns:
            The created run
        """
        data = {
            "import_type": import_type,
            "file_name": file_name,
            "status": ImportRunStatus.IN_PROGRESS.value,
            "rows_processed": 0,
            "rows_skipped": 0,
            "errors_count": 0,
            "created_at": _now_iso(),
        }

        try:
            result = self.db.table(self.table).insert(data).execute()

        except Exception as e:
            logger.error("start_import_run_failed", import_type=import_type, error=str(e))
            raise DatabaseError("insert", str(e), {"table": self.table})

        if not result.data:
            raise DatabaseError("insert", "no row returned", {"table": self.table})

        run = ImportRunResponse.model_validate(result.data[0])
        logger.info(
            "import_run_started",
            import_run_id=run.import_run_id,
            import_type=import_type,
            file_name=file_name
        )
        return run

    def record_batch(
        self,
        run: ImportRunResponse,
        processed: int,
        skipped: int,
        errors: int,
        is_last_batch: bool
    ) -> ImportRunResponse:
        """
        Add one batch's counts to the run; close it on the last batch.

        Args:
            run: The open run, as read before the batch was staged
            processed: Rows received in this batch
            skipped: Rows skipped for an empty name
            errors: Rows whose staging insert failed
            is_last_batch: Close the run after this batch

        Returns:
            The updated run
        """
        data = {
            "rows_processed": run.rows_processed + processed,
            "rows_skipped": run.rows_skipped + skipped,
            "errors_count": run.errors_count + errors,
        }
        if is_last_batch:
            data["status"] = ImportRunStatus.COMPLETED.value
            data["completed_at"] = _now_iso()

        run = self._update(run.import_run_id, data)

        logger.info(
            "import_run_batch_recorded",
            import_run_id=run.import_run_id,
            rows_processed=run.rows_processed,
            rows_skipped=run.rows_skipped,
            errors_count=run.errors_count,
            status=run.status.value
        )
        return run

    def mark_failed(self, import_run_id: str, reason: Optional[str] = None) -> ImportRunResponse:
        """
        Fail an in-progress run.

        Raises:
            ImportRunNotFoundError: If the run doesn't exist
            ImportRunClosedError: If the run is already completed or failed
        """
        self.get_open(import_run_id)

        run = self._update(import_run_id, {
            "status": ImportRunStatus.FAILED.value,
            "error_message": reason,
            "completed_at": _now_iso(),
        })

        logger.warning("import_run_failed", import_run_id=import_run_id, reason=reason)
        return run

    def record_migration(
        self,
        import_run_id: str,
        status: MigrationStatus,
        summary: dict
    ) -> ImportRunResponse:
        """Store the outcome of committing the run's approved rows."""
        run = self._update(import_run_id, {
            "migration_status": status.value,
            "migration_summary": summary,
        })

        logger.info(
            "import_run_migration_recorded",
            import_run_id=import_run_id,
            migration_status=status.value
        )
        return run

    def _update(self, import_run_id: str, data: dict) -> ImportRunResponse:
        try:
            result = (
                self.db.table(self.table)
                .update(data)
                .eq("import_run_id", import_run_id)
                .execute()
            )

        except Exception as e:
            logger.error("update_import_run_failed", import_run_id=import_run_id, error=str(e))
            raise DatabaseError("update", str(e), {"table": self.table})

        if not result.data:
            raise ImportRunNotFoundError(import_run_id)

        return ImportRunResponse.model_validate(result.data[0])


# Singleton instance
_service: Optional[ImportRunService] = None


def get_import_run_service() -> ImportRunService:
    """Get or create ImportRunService instance."""
    global _service
    if _service is None:
        _service = ImportRunService()
    return _service
