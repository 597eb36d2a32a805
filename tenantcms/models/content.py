"""
Tenant-scoped content models.

Every content row belongs to one tenant and supports the trash. Pages and
posts additionally carry a draft/published status.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tenantcms.collections import DocStatus
from tenantcms.core.database import Base
from tenantcms.models.base import BaseModel, TenantOwnedMixin
from tenantcms.models.user import User


# Many-to-many: Post <-> User (authors)
post_authors = Table(
    "post_authors",
    Base.metadata,
    Column("post_id", Integer, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Page(TenantOwnedMixin, BaseModel):
    """Routable page."""

    __tablename__ = "pages"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DocStatus.DRAFT.value,
        index=True,
    )
    content: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)


class Post(TenantOwnedMixin, BaseModel):
    """Blog post. Guest writers author these under a quota."""

    __tablename__ = "posts"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DocStatus.DRAFT.value,
        index=True,
    )
    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Publication date, may lie in the future"
    )
    content: Mapped[str | None] = mapped_column(Text, nullable=True)

    authors: Mapped[list[User]] = relationship(
        User,
        secondary=post_authors,
        lazy="selectin",
    )


class Media(TenantOwnedMixin, BaseModel):
    """Uploaded file metadata. Storage itself lives outside the CMS."""

    __tablename__ = "media"

    alt: Mapped[str | None] = mapped_column(String(500), nullable=True)
    filename: Mapped[str] = mapped_column(String(500), nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)


class Category(TenantOwnedMixin, BaseModel):
    __tablename__ = "categories"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, index=True)


class Header(TenantOwnedMixin, BaseModel):
    __tablename__ = "header"

    nav_items: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)


class Footer(TenantOwnedMixin, BaseModel):
    __tablename__ = "footer"

    nav_items: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)


class Section(TenantOwnedMixin, BaseModel):
    """Reusable content block referenced from pages."""

    __tablename__ = "sections"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
