"""
Commit engine schemas.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class CommitCounts(BaseModel):
    """
    Running counters for a commit call.

    linked counts only links that did not exist before.
    """

    inserted: int = 0
    updated: int = 0
    linked: int = 0
    skipped: int = 0


class CommitRequest(BaseModel):
    """Rows to commit directly, without staging."""

    type: str = Field(..., description="Entity kind tag")
    rows: list[Any] = Field(default_factory=list)


class CommitResponse(CommitCounts):
    """Counters for a successful direct commit."""

    ok: bool = True


class MigrateRequest(BaseModel):
    """Commit every approved staged row of a kind, optionally for one run."""

    type: str = Field(..., description="Entity kind tag")
    import_run_id: Optional[str] = None


class MigrateResponse(BaseModel):
    """Outcome of committing approved staged rows."""

    success: bool = True
    migrated: int = 0
    total: int = 0
    errors: list[str] = Field(default_factory=list)
    summary: CommitCounts = Field(default_factory=CommitCounts)
    message: Optional[str] = None
