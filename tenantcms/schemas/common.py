"""
Common/shared Pydantic schemas.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field


# Base configuration for all schemas
class BaseSchema(BaseModel):
    """
    Base schema with common configuration.

    All schemas should inherit from this.
    """

    model_config = ConfigDict(
        from_attributes=True,  # Allow ORM mode (SQLAlchemy objects)
        populate_by_name=True,  # Allow population by field name or alias
        str_strip_whitespace=True,  # Strip whitespace from strings
        validate_assignment=True,  # Validate on assignment, not just creation
    )


# Generic paginated response
T = TypeVar('T')

class PaginatedResponse(BaseModel, Generic[T]):
    """
    Generic paginated response wrapper.

    Usage:
        PaginatedResponse[dict](items=docs, total=100, skip=0, limit=10)
    """

    items: list[T]
    total: int = Field(..., description="Total number of items")
    skip: int = Field(..., description="Number of items skipped")
    limit: int = Field(..., description="Maximum items per page")


# Standard response wrappers
class MessageResponse(BaseModel):
    """Simple message response."""
    message: str

