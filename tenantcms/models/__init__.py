"""
Database models package.

``MODELS`` maps every collection slug to its model class.
"""

from tenantcms.collections import Collection
from tenantcms.core.database import Base
from tenantcms.models.base import BaseModel, SoftDeleteMixin, TenantOwnedMixin
from tenantcms.models.content import (
    Category,
    Footer,
    Header,
    Media,
    Page,
    Post,
    Section,
    post_authors,
)
from tenantcms.models.tenant import Tenant
from tenantcms.models.user import User, UserTenant

MODELS: dict[str, type[BaseModel]] = {
    Collection.PAGES.value: Page,
    Collection.POSTS.value: Post,
    Collection.MEDIA.value: Media,
    Collection.CATEGORIES.value: Category,
    Collection.HEADER.value: Header,
    Collection.FOOTER.value: Footer,
    Collection.SECTIONS.value: Section,
    Collection.USERS.value: User,
    Collection.TENANTS.value: Tenant,
}

__all__ = [
    "Base",
    "BaseModel",
    "SoftDeleteMixin",
    "TenantOwnedMixin",
    "Tenant",
    "User",
    "UserTenant",
    "Page",
    "Post",
    "Media",
    "Category",
    "Header",
    "Footer",
    "Section",
    "post_authors",
    "MODELS",
]
