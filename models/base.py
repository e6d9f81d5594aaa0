"""
Base schemas and mixins for all models.
"""

from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional


class BaseSchema(BaseModel):
    """
    Base for all schemas.

    Features:
        - Auto-trim whitespace from strings
        - Validate on attribute assignment
        - Allow ORM objects (from_attributes)
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True
    )


class TimestampMixin(BaseModel):
    """Add timestamps to response models."""
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class Pagination(BaseModel):
    """Pagination block returned alongside a page of data."""
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def create(cls, page: int, limit: int, total: int) -> "Pagination":
        """Build the block from request params and the exact count."""
        total_pages = (total + limit - 1) // limit  # Ceiling division
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages
        )
