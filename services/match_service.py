"""
Match classifier for incoming catalog rows.

One classifier serves every entity kind: the kind only decides which
catalog is loaded and which row column holds the name.

Verdicts, in priority order:
- invalid      empty or unreadable name
- exact        byte-equal to an existing display name          → update
- fuzzy        best candidate similarity ≥ threshold            → match
- first-token  best candidate only close on its first word      → match
- new          nothing close enough                             → create
"""

from collections.abc import Mapping
from typing import Any, Optional
import structlog

from config import settings
from models.catalog import EntityKind, CatalogEntity, get_entity_config
from models.matching import (
    MatchType,
    SuggestedAction,
    MatchVerdict,
    RowReview,
    ValidationSummary,
    ValidateResponse,
    LookupItem,
)
from services.catalog_service import get_catalog_service
from utils.text_utils import (
    normalize_name,
    first_significant_token,
    similarity,
    split_list_field,
    clean_text,
)

logger = structlog.get_logger(__name__)


class UnreadableRowError(ValueError):
    """Row or name cell cannot be read as text."""


def read_name(row: Any, field: str) -> str:
    """
    Read and trim the name cell of a raw row.

    Missing or null cells read as "". Numbers are accepted as text
    (spreadsheets turn "1792" into 1792).

    Raises:
        UnreadableRowError: If the row is not an object or the cell is not text
    """
    if not isinstance(row, Mapping):
        raise UnreadableRowError("Row is not an object")

    value = row.get(field)
    if value is None:
        return ""
    if isinstance(value, bool):
        raise UnreadableRowError(f"{field} must be text")
    if isinstance(value, (str, int, float)):
        return str(value).strip()

    raise UnreadableRowError(f"{field} must be text")


class MatchService:
    """
    Classifies incoming names against an in-memory catalog.

    Thresholds come from settings unless given explicitly (tests).
    """

    def __init__(
        self,
        threshold: Optional[float] = None,
        first_token_score: Optional[float] = None,
        first_token_min_length: Optional[int] = None
    ):
        self.threshold = settings.match_threshold if threshold is None else threshold
        self.first_token_score = (
            settings.first_token_score if first_token_score is None else first_token_score
        )
        self.first_token_min_length = (
            settings.first_token_min_length
            if first_token_min_length is None
            else first_token_min_length
        )

    # ===================
    # CLASSIFICATION
    # ===================

    def classify(self, incoming_name: Any, catalog: list[CatalogEntity]) -> MatchVerdict:
        """
        Classify one incoming name against the full catalog.

        Scans every candidate (no early exit) so a fuzzy verdict always
        carries the global best score. Ties on rank fall back to raw
        similarity, then the earliest candidate.
        Never raises; anything unexpected becomes an invalid verdict.

        Args:
            incoming_name: Name as submitted
            catalog: Every existing entity of the kind

        Returns:
            MatchVerdict
        """
        try:
            return self._classify(incoming_name, catalog)
        except Exception as e:
            logger.warning("classification_failed", name=repr(incoming_name)[:100], error=str(e))
            return MatchVerdict(match_type=MatchType.INVALID, error=f"Unreadable name: {e}")

    def _classify(self, incoming_name: Any, catalog: list[CatalogEntity]) -> MatchVerdict:
        if not isinstance(incoming_name, str):
            return MatchVerdict(match_type=MatchType.INVALID, error="Name must be text")

        name = incoming_name.strip()
        if not name:
            return MatchVerdict(match_type=MatchType.INVALID, error="Missing name")

        for entity in catalog:
            if entity.name == name:
                return MatchVerdict(
                    match_type=MatchType.EXACT,
                    matched_entity=entity,
                    action=SuggestedAction.UPDATE
                )

        incoming_token = first_significant_token(name)
        incoming_normalized = normalize_name(name)
        token_usable = len(incoming_token) > self.first_token_min_length

        best: Optional[CatalogEntity] = None
        best_rank = (0.0, 0.0)

        for candidate in catalog:
            score = similarity(incoming_normalized, normalize_name(candidate.name))
            rank = score

            # Brand-family siblings all rank at least first_token_score
            if token_usable and first_significant_token(candidate.name) == incoming_token:
                rank = max(score, self.first_token_score)

            # Equal rank falls back to raw similarity, then catalog order
            if (rank, score) > best_rank:
                best, best_rank = candidate, (rank, score)

        rank, score = best_rank
        if best is not None and score >= self.threshold:
            return MatchVerdict(
                match_type=MatchType.FUZZY,
                matched_entity=best,
                similarity=score,
                action=SuggestedAction.MATCH
            )
        if best is not None and rank >= self.threshold:
            return MatchVerdict(
                match_type=MatchType.FIRST_TOKEN,
                matched_entity=best,
                similarity=rank,
                action=SuggestedAction.MATCH
            )

        return MatchVerdict(match_type=MatchType.NEW, action=SuggestedAction.CREATE)

    # ===================
    # VALIDATION REPORT
    # ===================

    def review_row(
        self,
        kind: EntityKind,
        row_index: int,
        row: Any,
        catalog: list[CatalogEntity]
    ) -> RowReview:
        """Classify one raw row and attach its cleaned fields."""
        config = get_entity_config(kind)

        try:
            name = read_name(row, config.name_column)
        except UnreadableRowError as e:
            return RowReview(row_index=row_index, match_type=MatchType.INVALID, error=str(e))

        verdict = self.classify(name, catalog)
        review = RowReview(
            row_index=row_index,
            name=name,
            match_type=verdict.match_type,
            matched_entity=verdict.matched_entity,
            similarity=verdict.similarity,
            action=verdict.action,
            error=verdict.error,
        )

        if config.url_column:
            review.url = clean_text(row.get(config.url_column))
        if config.logo_column:
            review.logo_url = clean_text(row.get(config.logo_column))
        if config.source_column:
            review.data_source = clean_text(row.get(config.source_column)) or settings.default_data_source
        for link in config.links:
            if link.target_kind == EntityKind.CATEGORY:
                review.categories = split_list_field(row.get(link.row_field))
            elif link.target_kind == EntityKind.SUB_CATEGORY:
                review.sub_categories = split_list_field(row.get(link.row_field))

        return review

    def validate_rows(
        self,
        kind: EntityKind,
        rows: list[Any],
        metadata_only: bool = False
    ) -> ValidateResponse:
        """
        Build the review report for a batch of incoming rows.

        Loads the catalog once; a failed catalog read fails the whole call
        because the best-match guarantee needs every candidate.

        Args:
            kind: Entity kind being imported
            rows: Raw rows (already checked non-empty unless metadata_only)
            metadata_only: Skip classification, return lookups only

        Returns:
            ValidateResponse

        Raises:
            DatabaseError: If the catalog or lookup lists cannot be read
        """
        config = get_entity_config(kind)
        catalog = get_catalog_service(kind).fetch_all()

        response = ValidateResponse(
            catalog=sorted(catalog, key=lambda e: e.name.lower())
        )

        link_kinds = {link.target_kind for link in config.links}
        if EntityKind.CATEGORY in link_kinds:
            response.categories = self._lookup(EntityKind.CATEGORY)
        if EntityKind.SUB_CATEGORY in link_kinds:
            response.sub_categories = self._lookup(EntityKind.SUB_CATEGORY)

        if metadata_only:
            return response

        summary = ValidationSummary(total=len(rows))
        for index, row in enumerate(rows):
            review = self.review_row(kind, index, row, catalog)
            response.reviews.append(review)

            if review.match_type == MatchType.EXACT:
                summary.exact += 1
            elif review.match_type in (MatchType.FIRST_TOKEN, MatchType.FUZZY):
                summary.fuzzy += 1
                if review.match_type == MatchType.FIRST_TOKEN:
                    summary.first_token += 1
            elif review.match_type == MatchType.NEW:
                summary.new += 1
            else:
                summary.errors += 1

        response.summary = summary

        logger.info(
            "rows_validated",
            kind=config.kind.value,
            total=summary.total,
            exact=summary.exact,
            fuzzy=summary.fuzzy,
            new=summary.new,
            errors=summary.errors
        )

        return response

    def _lookup(self, kind: EntityKind) -> list[LookupItem]:
        entities = get_catalog_service(kind).fetch_all()
        return sorted(
            (LookupItem(id=e.id, name=e.name) for e in entities),
            key=lambda item: item.name.lower()
        )


# Singleton instance
_service: Optional[MatchService] = None


def get_match_service() -> MatchService:
    """Get or create MatchService instance."""
    global _service
    if _service is None:
        _service = MatchService()
    return _service
