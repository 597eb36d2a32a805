"""
Base model with common fields for all entities.

Provides:
- Integer primary key
- Timestamps (created_at, updated_at)
- Soft delete marker (deleted_at) via SoftDeleteMixin
- Owning tenant via TenantOwnedMixin
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Integer, func
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from tenantcms.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseModel(Base):
    """
    Abstract base model for all database tables.

    Provides common fields:
    - id: auto-increment primary key (tenant cookies carry it as a string)
    - created_at: Timestamp when record was created
    - updated_at: Timestamp when record was last modified

    Note: This is an abstract class (no __tablename__).
    Subclasses must define __tablename__.
    """

    __abstract__ = True

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Unique identifier"
    )

    # Python-side default keeps sub-second ordering on every backend
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        comment="Timestamp when record was created"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
        comment="Timestamp when record was last updated"
    )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"

    def dict(self) -> dict[str, Any]:
        """Column values keyed by column name."""
        return {
            column.name: getattr(self, column.name)
            for column in self.__table__.columns
        }


class SoftDeleteMixin:
    """Trash support: a set ``deleted_at`` hides the row from non-admin queries."""

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
        comment="Set when moved to trash"
    )


class TenantOwnedMixin(SoftDeleteMixin):
    """Row owned by exactly one tenant."""

    @declared_attr
    def tenant_id(cls) -> Mapped[int]:
        return mapped_column(
            Integer,
            ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
            comment="Owning tenant"
        )
