"""
Store interface consumed by the access layer.

The store applies no access control. Capability lookups, quota counts and
the super-admin guards call it directly; the collection service calls it
after ANDing in the filter an access predicate returned.

Documents are plain dicts. Relationship fields hold ids:
``tenant`` on tenant-scoped documents, ``tenants[].tenant`` on users,
``authors`` on posts.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol

from tenantcms.access.where import Where


class StoreError(Exception):
    """Raised by store implementations when the backend fails."""
    pass


@dataclass
class FindResult:
    """One page of documents plus the total match count."""
    docs: list[dict[str, Any]] = field(default_factory=list)
    total_docs: int = 0


class Store(Protocol):
    """Async document store keyed by collection slug."""

    async def find_by_id(self, collection: str, id: Any) -> dict[str, Any] | None:
        ...

    async def find(
        self,
        collection: str,
        where: Where | None = None,
        *,
        limit: int | None = None,
        skip: int = 0,
        sort: str | None = None,
    ) -> FindResult:
        ...

    async def count(self, collection: str, where: Where | None = None) -> int:
        ...

    async def create(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        ...

    async def update(self, collection: str, id: Any, data: dict[str, Any]) -> dict[str, Any] | None:
        ...

    async def delete(self, collection: str, id: Any) -> bool:
        ...
