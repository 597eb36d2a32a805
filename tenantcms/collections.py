"""
Collection slugs and document status values.

Add new collections here when creating them.
"""

from enum import Enum


class Collection(str, Enum):
    """Every collection slug known to the CMS."""
    PAGES = "pages"
    POSTS = "posts"
    MEDIA = "media"
    CATEGORIES = "categories"
    HEADER = "header"
    FOOTER = "footer"
    SECTIONS = "sections"
    USERS = "users"
    TENANTS = "tenants"


class DocStatus(str, Enum):
    """Publication status for versioned collections."""
    DRAFT = "draft"
    PUBLISHED = "published"


# Collections that are managed per-tenant and can be toggled in tenant settings
TENANT_MANAGED_COLLECTIONS: tuple[str, ...] = (
    Collection.PAGES.value,
    Collection.POSTS.value,
    Collection.MEDIA.value,
    Collection.CATEGORIES.value,
    Collection.HEADER.value,
    Collection.FOOTER.value,
    Collection.SECTIONS.value,
)

# Collections that carry a draft/published status
VERSIONED_COLLECTIONS: frozenset[str] = frozenset({
    Collection.PAGES.value,
    Collection.POSTS.value,
})


def is_tenant_managed(collection: str) -> bool:
    """Check whether documents of this collection belong to a tenant."""
    return collection in TENANT_MANAGED_COLLECTIONS
