"""
Catalog service: read and write access to one canonical entity table.

Provides paged full-catalog reads for the classifier and the
get-or-create primitive for the commit engine.
"""

from typing import Any, Optional
import structlog

from config import get_supabase_client, is_unique_violation, settings
from models.catalog import EntityKind, EntityConfig, CatalogEntity, get_entity_config
from exceptions import DatabaseError, DuplicateError, NotFoundError

logger = structlog.get_logger(__name__)


class CatalogService:
    """
    Canonical catalog access for one entity kind.

    Names are unique per kind by convention only; get_or_create() is the
    guard, with a bounded retry when a concurrent writer wins the insert.
    """

    def __init__(self, kind: EntityKind):
        self.db = get_supabase_client()
        self.config: EntityConfig = get_entity_config(kind)
        self.table = self.config.table

    # ===================
    # READ OPERATIONS
    # ===================

    def fetch_all(self, page_size: Optional[int] = None) -> list[CatalogEntity]:
        """
        Load the whole catalog of this kind into memory.

        Reads fixed-size pages with range() until a short page comes back.

        Args:
            page_size: Rows per page (defaults to CATALOG_PAGE_SIZE)

        Returns:
            List of CatalogEntity in store order

        Raises:
            DatabaseError: If any page read fails
        """
        page_size = page_size or settings.catalog_page_size
        entities: list[CatalogEntity] = []
        start = 0

        logger.debug("loading_catalog", kind=self.config.kind.value, page_size=page_size)

        try:
            while True:
                result = (
                    self.db.table(self.table)
                    .select(self.config.select_columns)
                    .range(start, start + page_size - 1)
                    .execute()
                )
                page = result.data or []
                entities.extend(CatalogEntity.from_row(self.config, row) for row in page)

                if len(page) < page_size:
                    break
                start += page_size

        except Exception as e:
            logger.error(
                "load_catalog_failed",
                kind=self.config.kind.value,
                loaded=len(entities),
                error=str(e)
            )
            raise DatabaseError("select", str(e), {"table": self.table})

        logger.info("catalog_loaded", kind=self.config.kind.value, count=len(entities))
        return entities

    def get_by_name(self, name: str) -> Optional[dict]:
        """
        Find one row by its exact display name.

        Args:
            name: Display name (compared byte-for-byte)

        Returns:
            Raw row dict or None if not found
        """
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq(self.config.name_column, name)
                .limit(1)
                .execute()
            )
            return result.data[0] if result.data else None

        except Exception as e:
            logger.error("get_entity_by_name_failed", table=self.table, name=name, error=str(e))
            raise DatabaseError("select", str(e), {"table": self.table})

    def get_by_id(self, entity_id: str) -> Optional[dict]:
        """Find one row by id. Returns None if not found."""
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq(self.config.id_column, entity_id)
                .limit(1)
                .execute()
            )
            return result.data[0] if result.data else None

        except Exception as e:
            logger.error("get_entity_by_id_failed", table=self.table, entity_id=entity_id, error=str(e))
            raise DatabaseError("select", str(e), {"table": self.table})

    # ===================
    # WRITE OPERATIONS
    # ===================

    def insert(self, values: dict[str, Any]) -> dict:
        """
        Insert one entity row.

        Returns:
            The inserted row (with its generated id)

        Raises:
            DuplicateError: If the name already exists (unique violation)
            DatabaseError: For any other store failure
        """
        name = values.get(self.config.name_column)

        try:
            result = self.db.table(self.table).insert(values).execute()

        except Exception as e:
            if is_unique_violation(e):
                logger.info("entity_insert_conflict", table=self.table, name=name)
                raise DuplicateError(self.config.kind.value, self.config.name_column, name) from e
            logger.error("entity_insert_failed", table=self.table, name=name, error=str(e))
            raise DatabaseError("insert", str(e), {"table": self.table})

        if not result.data:
            raise DatabaseError("insert", "no row returned", {"table": self.table})

        row = result.data[0]
        logger.info("entity_created", table=self.table, entity_id=row.get(self.config.id_column), name=name)
        return row

    def update(self, entity_id: str, values: dict[str, Any]) -> dict:
        """
        Overwrite the given columns of one entity.

        Raises:
            NotFoundError: If no row has this id
            DatabaseError: If the update fails
        """
        try:
            result = (
                self.db.table(self.table)
                .update(values)
                .eq(self.config.id_column, entity_id)
                .execute()
            )

        except Exception as e:
            logger.error("entity_update_failed", table=self.table, entity_id=entity_id, error=str(e))
            raise DatabaseError("update", str(e), {"table": self.table})

        if not result.data:
            raise NotFoundError(self.config.kind.value.replace("_", " ").capitalize(), entity_id)

        logger.debug("entity_updated", table=self.table, entity_id=entity_id)
        return result.data[0]

    def get_or_create(
        self,
        name: str,
        extra: Optional[dict[str, Any]] = None
    ) -> tuple[dict, bool]:
        """
        Return the entity with this name, creating it if absent.

        A concurrent caller can insert the same name between our lookup
        and our insert. The resulting unique violation is absorbed by
        re-reading, up to COMMIT_MAX_ATTEMPTS times.

        Args:
            name: Unique display name
            extra: Additional columns written only on insert

        Returns:
            Tuple of (row, created)

        Raises:
            DatabaseError: If the store fails or the conflict never resolves
        """
        attempts = settings.commit_max_attempts

        for attempt in range(1, attempts + 1):
            found = self.get_by_name(name)
            if found:
                return found, False

            try:
                return self.insert({self.config.name_column: name, **(extra or {})}), True
            except DuplicateError:
                logger.warning(
                    "get_or_create_conflict_retry",
                    table=self.table,
                    name=name,
                    attempt=attempt
                )

        raise DatabaseError(
            "insert",
            f"{self.config.name_column} '{name}' conflicted on every attempt",
            {"table": self.table, "attempts": attempts}
        )

    def entity_id(self, row: dict) -> str:
        """Id of a raw row of this kind."""
        return str(row[self.config.id_column])


# Per-kind instances
_services: dict[EntityKind, CatalogService] = {}


def get_catalog_service(kind: EntityKind) -> CatalogService:
    """Get or create the CatalogService for a kind."""
    kind = EntityKind(kind)
    if kind not in _services:
        _services[kind] = CatalogService(kind)
    return _services[kind]
