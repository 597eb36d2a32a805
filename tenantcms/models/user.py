"""
User model for authentication and role assignment.

Top-level users carry their role in ``roles``. Tenant-scoped users have no
scalar role and a single ``UserTenant`` row holding their tenant roles.
"""

from sqlalchemy import JSON, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tenantcms.core.database import Base
from tenantcms.models.base import BaseModel, SoftDeleteMixin


class UserTenant(Base):
    """Tenant assignment of a user, with the roles held there."""

    __tablename__ = "user_tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    tenant_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    roles: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Tenant role tags"
    )

    def __repr__(self) -> str:
        return f"<UserTenant(user_id={self.user_id}, tenant_id={self.tenant_id})>"


class User(SoftDeleteMixin, BaseModel):
    """User account model."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="User email address (unique)"
    )

    hashed_password: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Bcrypt hashed password"
    )

    name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Display name"
    )

    roles: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        index=True,
        comment="Top-level role (super-admin, super-editor); NULL for tenant users"
    )

    guest_writer_post_limit: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        comment="Maximum published or scheduled posts for a guest writer"
    )

    tenants: Mapped[list[UserTenant]] = relationship(
        UserTenant,
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by=UserTenant.id,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
