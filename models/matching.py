"""
Match classification schemas.

A MatchVerdict is recomputed on every validation call and never stored.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.base import BaseSchema
from models.catalog import CatalogEntity


class MatchType(str, Enum):
    """Classifier verdict for one incoming name."""
    EXACT = "exact"
    FIRST_TOKEN = "first-token"
    FUZZY = "fuzzy"
    NEW = "new"
    INVALID = "invalid"


class SuggestedAction(str, Enum):
    """What the commit step should do with a classified row."""
    UPDATE = "update"   # Exact match, overwrite existing entity
    MATCH = "match"     # Suggested match, reviewer confirms or overrides
    CREATE = "create"   # No match, create a new entity


class MatchVerdict(BaseModel):
    """
    Classifier output for one incoming name.

    similarity is set only when a match was suggested (first-token or
    fuzzy). action is None for invalid rows.
    """

    model_config = ConfigDict(frozen=True)

    match_type: MatchType
    matched_entity: Optional[CatalogEntity] = None
    similarity: Optional[float] = Field(None, ge=0.0, le=1.0)
    action: Optional[SuggestedAction] = None
    error: Optional[str] = None

    @property
    def is_suggested_match(self) -> bool:
        return self.match_type in (MatchType.FIRST_TOKEN, MatchType.FUZZY)


class RowReview(BaseSchema):
    """Review line for one incoming row, as shown to the reviewer."""

    row_index: int = Field(..., ge=0, description="Position in the submitted rows")
    name: str = Field("", description="Trimmed incoming name")
    match_type: MatchType
    matched_entity: Optional[CatalogEntity] = None
    similarity: Optional[float] = None
    action: Optional[SuggestedAction] = None
    error: Optional[str] = None
    url: Optional[str] = None
    logo_url: Optional[str] = None
    data_source: Optional[str] = None
    categories: list[str] = Field(default_factory=list)
    sub_categories: list[str] = Field(default_factory=list)


class ValidationSummary(BaseModel):
    """
    Aggregate counts for a validation call.

    fuzzy counts every suggested match; first_token is the subset that
    came from the first-token heuristic.
    """

    total: int = 0
    exact: int = 0
    first_token: int = 0
    fuzzy: int = 0
    new: int = 0
    errors: int = 0


class ValidateRequest(BaseModel):
    """Rows to classify against the catalog of one kind."""

    rows: list[Any] = Field(default_factory=list, description="Raw row objects")
    metadata_only: bool = Field(
        False,
        description="Return only the catalog and lookup lists"
    )


class LookupItem(BaseModel):
    """Id/name pair for category and sub-category pickers."""

    id: str
    name: str


class ValidateResponse(BaseModel):
    """Review report for a validation call."""

    reviews: list[RowReview] = Field(default_factory=list)
    summary: ValidationSummary = Field(default_factory=ValidationSummary)
    catalog: list[CatalogEntity] = Field(
        default_factory=list,
        description="Full existing catalog, sorted by name, for manual override"
    )
    categories: list[LookupItem] = Field(default_factory=list)
    sub_categories: list[LookupItem] = Field(default_factory=list)
