"""
Tenant model for multi-tenancy.

Each tenant is an isolated content namespace with its own domain, its own
set of enabled collections and its own public-read settings.
"""

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from tenantcms.models.base import BaseModel, SoftDeleteMixin


class Tenant(SoftDeleteMixin, BaseModel):
    """
    Tenant (organization) model.

    ``allowed_collections``: None allows every managed collection, an empty
    list allows none. ``allow_public_read`` is always kept a subset of it.
    """

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name"
    )

    slug: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True,
        comment="URL-friendly identifier (e.g., 'acme-corp')"
    )

    domain: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
        comment="Routing domain, matched at login to preselect the tenant"
    )

    allowed_collections: Mapped[list[str] | None] = mapped_column(
        JSON,
        nullable=True,
        comment="Enabled collections; NULL = all"
    )

    allow_public_read: Mapped[list[str] | None] = mapped_column(
        JSON,
        nullable=True,
        comment="Collections readable without login"
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, slug={self.slug})>"
