"""
Commit engine: upsert reviewed rows into the canonical catalog.

Rows are committed one at a time so that later rows see earlier rows'
writes (two rows naming the same new category create it once).

Two entry points:
- commit_rows()      direct commit, stops at the first failing row
- migrate_approved() staged commit, isolates failures per row
"""

from collections.abc import Mapping
from typing import Any, Optional
import structlog

from config import settings
from models.catalog import EntityKind, EntityConfig, LinkSpec, get_entity_config
from models.commit import CommitCounts, MigrateResponse
from models.import_run import MigrationStatus
from services.catalog_service import get_catalog_service
from services.link_service import get_link_service
from services.staging_service import get_staging_service
from services.match_service import read_name, UnreadableRowError
from utils.text_utils import split_list_field, clean_text
from exceptions import (
    AppError,
    DatabaseError,
    DuplicateError,
    NoRowsProvidedError,
    CommitError,
)

logger = structlog.get_logger(__name__)


class CommitService:
    """Upserts entities by name and links their related entities."""

    # ===================
    # SINGLE ROW
    # ===================

    def commit_row(
        self,
        kind: EntityKind,
        row: Any,
        counts: CommitCounts,
        matched_entity_id: Optional[str] = None
    ) -> Optional[str]:
        """
        Upsert one row and its links, updating counts in place.

        The entity is found by exact name (or by matched_entity_id when a
        reviewer confirmed an existing entity). Found entities get their
        metadata columns overwritten; missing ones are inserted. A row
        without a name is skipped with no writes.

        Args:
            kind: Entity kind of the row
            row: Raw row payload
            counts: Running counters for the whole call
            matched_entity_id: Reviewer-confirmed target, overrides name lookup

        Returns:
            Id of the committed entity, or None if the row was skipped

        Raises:
            AppError: If any store operation fails
        """
        config = get_entity_config(kind)
        catalog = get_catalog_service(kind)

        try:
            name = read_name(row, config.name_column)
        except UnreadableRowError:
            name = ""

        if not name:
            counts.skipped += 1
            return None

        values = self._metadata_values(config, row)

        if matched_entity_id:
            catalog.update(matched_entity_id, values)
            entity_id = matched_entity_id
            counts.updated += 1
        else:
            existing = catalog.get_by_name(name)
            if existing:
                entity_id = catalog.entity_id(existing)
                catalog.update(entity_id, values)
                counts.updated += 1
            else:
                entity_id, created = self._insert_or_update(config, name, values)
                if created:
                    counts.inserted += 1
                else:
                    counts.updated += 1

        for link in config.links:
            counts.linked += self._link_tokens(link, entity_id, row)

        return entity_id

    def _metadata_values(self, config: EntityConfig, row: Mapping) -> dict[str, Any]:
        values: dict[str, Any] = {}
        if config.url_column:
            values[config.url_column] = clean_text(row.get(config.url_column))
        if config.logo_column:
            values[config.logo_column] = clean_text(row.get(config.logo_column))
        if config.source_column:
            values[config.source_column] = (
                clean_text(row.get(config.source_column)) or settings.default_data_source
            )
        return values

    def _insert_or_update(
        self,
        config: EntityConfig,
        name: str,
        values: dict[str, Any]
    ) -> tuple[str, bool]:
        """Insert a new entity; if a concurrent writer got there first, update theirs."""
        catalog = get_catalog_service(config.kind)

        try:
            row = catalog.insert({config.name_column: name, **values})
            return catalog.entity_id(row), True

        except DuplicateError:
            existing = catalog.get_by_name(name)
            if not existing:
                raise DatabaseError(
                    "insert",
                    f"{config.name_column} '{name}' conflicted but could not be re-read",
                    {"table": config.table}
                )
            entity_id = catalog.entity_id(existing)
            catalog.update(entity_id, values)
            return entity_id, False

    def _link_tokens(self, link: LinkSpec, entity_id: str, row: Mapping) -> int:
        """
        Get-or-create every entity named in the link column and link it.

        A new sub-category is filed under the first category of the same row.

        Returns:
            Number of links that did not exist before
        """
        tokens = split_list_field(row.get(link.row_field))
        if not tokens:
            return 0

        target_catalog = get_catalog_service(link.target_kind)
        links = get_link_service()

        extra: dict[str, Any] = {}
        if link.target_kind == EntityKind.SUB_CATEGORY:
            category_id = self._first_category_id(row)
            if category_id:
                extra["category_id"] = category_id

        created_links = 0
        for token in tokens:
            target, _ = target_catalog.get_or_create(token, extra)
            link_row = {
                link.owner_column: entity_id,
                link.target_column: target_catalog.entity_id(target),
                **link.extra,
            }
            if links.link_if_missing(link.table, link_row, link.unique_columns):
                created_links += 1

        return created_links

    def _first_category_id(self, row: Mapping) -> Optional[str]:
        for link in get_entity_config(EntityKind.BRAND).links:
            if link.target_kind != EntityKind.CATEGORY:
                continue
            names = split_list_field(row.get(link.row_field))
            if names:
                categories = get_catalog_service(EntityKind.CATEGORY)
                found = categories.get_by_name(names[0])
                return categories.entity_id(found) if found else None
        return None

    # ===================
    # DIRECT COMMIT
    # ===================

    def commit_rows(self, kind: EntityKind, rows: list[Any]) -> CommitCounts:
        """
        Commit rows straight into the catalog, in order.

        The first failing row aborts the call. Rows before it stay
        committed; their counts travel in the error details.

        Raises:
            NoRowsProvidedError: If rows is empty
            CommitError: If a row cannot be committed
        """
        if not rows:
            raise NoRowsProvidedError()

        config = get_entity_config(kind)
        counts = CommitCounts()

        for index, row in enumerate(rows):
            try:
                self.commit_row(kind, row, counts)
            except AppError as e:
                logger.error(
                    "commit_aborted",
                    kind=config.kind.value,
                    row=index + 1,
                    error=e.message,
                    **counts.model_dump()
                )
                raise CommitError(index + 1, e.message, counts.model_dump()) from e

        logger.info("rows_committed", kind=config.kind.value, total=len(rows), **counts.model_dump())
        return counts

    # ===================
    # STAGED COMMIT
    # ===================

    def migrate_approved(
        self,
        kind: EntityKind,
        import_run_id: Optional[str] = None
    ) -> MigrateResponse:
        """
        Commit every approved staged row, then remove it from staging.

        A failing row is reported and left in staging; the others carry
        on. With import_run_id, the outcome is recorded on that run.

        Args:
            kind: Entity kind to migrate
            import_run_id: Only rows of this run

        Returns:
            MigrateResponse with counts and per-row errors
        """
        config = get_entity_config(kind)
        staging = get_staging_service(kind)

        if import_run_id:
            staging.import_runs.get_by_id(import_run_id)

        approved = staging.get_approved(import_run_id)
        if not approved:
            return MigrateResponse(message="No approved rows to migrate")

        counts = CommitCounts()
        migrated_ids: list[str] = []
        errors: list[str] = []

        for staged in approved:
            payload = {**staged.raw_data, config.name_column: staged.name}
            try:
                self.commit_row(kind, payload, counts, staged.matched_entity_id)
                migrated_ids.append(staged.staging_id)
            except AppError as e:
                logger.warning(
                    "staged_row_migration_failed",
                    kind=config.kind.value,
                    staging_id=staged.staging_id,
                    error=e.message
                )
                errors.append(f"Row {staged.row_index + 1}: {e.message}")

        staging.delete_rows(migrated_ids)

        response = MigrateResponse(
            success=not errors,
            migrated=len(migrated_ids),
            total=len(approved),
            errors=errors,
            summary=counts,
            message=f"Migrated {len(migrated_ids)} of {len(approved)} approved rows"
        )

        if import_run_id:
            staging.import_runs.record_migration(
                import_run_id,
                MigrationStatus.PARTIAL if errors else MigrationStatus.MIGRATED,
                {
                    "migrated": response.migrated,
                    "total": response.total,
                    "errors": len(errors),
                    **counts.model_dump(),
                }
            )

        logger.info(
            "staged_rows_migrated",
            kind=config.kind.value,
            import_run_id=import_run_id,
            migrated=response.migrated,
            total=response.total,
            errors=len(errors)
        )
        return response


# Singleton instance
_service: Optional[CommitService] = None


def get_commit_service() -> CommitService:
    """Get or create CommitService instance."""
    global _service
    if _service is None:
        _service = CommitService()
    return _service
