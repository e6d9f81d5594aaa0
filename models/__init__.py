"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    TimestampMixin,
    Pagination,
)
from models.catalog import (
    EntityKind,
    EntityConfig,
    LinkSpec,
    ENTITY_REGISTRY,
    CatalogEntity,
    get_entity_config,
    importable_kinds,
    resolve_import_kind,
)
from models.matching import (
    MatchType,
    SuggestedAction,
    MatchVerdict,
    RowReview,
    ValidationSummary,
    ValidateRequest,
    ValidateResponse,
    LookupItem,
)
from models.import_run import (
    ImportRunStatus,
    MigrationStatus,
    ImportRunResponse,
    ImportRunListResponse,
    FailRunRequest,
)
from models.staging import (
    ApprovalFilter,
    ApprovalState,
    StagedRowResponse,
    StagedRowListResponse,
    ConfirmedMatch,
    IngestRequest,
    IngestResponse,
    ApproveRequest,
    BulkApproveRequest,
    ApprovalResponse,
)
from models.commit import (
    CommitCounts,
    CommitRequest,
    CommitResponse,
    MigrateRequest,
    MigrateResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "TimestampMixin",
    "Pagination",
    # Catalog
    "EntityKind",
    "EntityConfig",
    "LinkSpec",
    "ENTITY_REGISTRY",
    "CatalogEntity",
    "get_entity_config",
    "importable_kinds",
    "resolve_import_kind",
    # Matching
    "MatchType",
    "SuggestedAction",
    "MatchVerdict",
    "RowReview",
    "ValidationSummary",
    "ValidateRequest",
    "ValidateResponse",
    "LookupItem",
    # Import runs
    "ImportRunStatus",
    "MigrationStatus",
    "ImportRunResponse",
    "ImportRunListResponse",
    "FailRunRequest",
    # Staging
    "ApprovalFilter",
    "ApprovalState",
    "StagedRowResponse",
    "StagedRowListResponse",
    "ConfirmedMatch",
    "IngestRequest",
    "IngestResponse",
    "ApproveRequest",
    "BulkApproveRequest",
    "ApprovalResponse",
    # Commit
    "CommitCounts",
    "CommitRequest",
    "CommitResponse",
    "MigrateRequest",
    "MigrateResponse",
]
