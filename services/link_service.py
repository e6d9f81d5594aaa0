"""
Link service: many-to-many association rows.

link_if_missing() is the only writer of link tables, so a given pair is
linked at most once even when the same payload is committed repeatedly.
"""

from typing import Any, Optional
import structlog

from config import get_supabase_client, is_unique_violation, settings
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)


class LinkService:
    """Existence checks and inserts for link tables."""

    def __init__(self):
        self.db = get_supabase_client()

    def exists(
        self,
        table: str,
        link_row: dict[str, Any],
        unique_columns: list[str]
    ) -> bool:
        """
        Check whether a row matching every unique column is present.

        Raises:
            DatabaseError: If the lookup fails
        """
        try:
            query = self.db.table(table).select(",".join(unique_columns))
            for column in unique_columns:
                query = query.eq(column, link_row[column])
            result = query.limit(1).execute()
            return bool(result.data)

        except Exception as e:
            logger.error("link_lookup_failed", table=table, error=str(e))
            raise DatabaseError("select", str(e), {"table": table})

    def link_if_missing(
        self,
        table: str,
        link_row: dict[str, Any],
        unique_columns: Optional[list[str]] = None
    ) -> bool:
        """
        Insert a link row unless an equivalent one exists.

        A unique violation on insert means a concurrent writer linked the
        pair first; the loop re-checks and reports "already linked".

        Args:
            table: Link table name
            link_row: Full row to insert
            unique_columns: Columns identifying the pair (defaults to all keys)

        Returns:
            True if a new link row was written, False if it already existed

        Raises:
            DatabaseError: If the store fails or the conflict never resolves
        """
        unique_columns = unique_columns or list(link_row.keys())
        attempts = settings.commit_max_attempts

        for attempt in range(1, attempts + 1):
            if self.exists(table, link_row, unique_columns):
                return False

            try:
                self.db.table(table).insert(link_row).execute()
                logger.debug("link_created", table=table, **{c: link_row[c] for c in unique_columns})
                return True

            except Exception as e:
                if not is_unique_violation(e):
                    logger.error("link_insert_failed", table=table, error=str(e))
                    raise DatabaseError("insert", str(e), {"table": table})
                logger.warning("link_conflict_retry", table=table, attempt=attempt)

        raise DatabaseError(
            "insert",
            "link conflicted on every attempt",
            {"table": table, "attempts": attempts}
        )


# Singleton instance
_service: Optional[LinkService] = None


def get_link_service() -> LinkService:
    """Get or create LinkService instance."""
    global _service
    if _service is None:
        _service = LinkService()
    return _service
