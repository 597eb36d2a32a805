"""
In-memory ``Store`` for unit tests.

Filters are evaluated with ``Where.matches``, the same semantics the SQL
compiler implements, so access predicates can be exercised end to end
without a database.
"""

import copy
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Any

from tenantcms.access.context import RequestContext
from tenantcms.access.ids import normalize_tenant_id
from tenantcms.access.store import FindResult, StoreError
from tenantcms.access.where import Where
from tenantcms.schemas.user import AuthUser, parse_user

EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeStore:
    """
    Dict-backed store.

    Attributes:
        calls: Counter of (method, collection) pairs, for cache assertions
        failing: Collections whose every call raises StoreError
    """

    def __init__(self) -> None:
        self.docs: dict[str, dict[int, dict[str, Any]]] = defaultdict(dict)
        self.calls: Counter = Counter()
        self.failing: set[str] = set()
        self._ids = count(100)

    def add(self, collection: str, **fields: Any) -> dict[str, Any]:
        """
        Insert a document directly, bypassing every hook.

        Explicit ids should stay below 100; generated ids start there.
        """
        doc_id = fields.pop("id", None) or next(self._ids)
        doc = {
            "id": doc_id,
            "created_at": EPOCH + timedelta(seconds=doc_id),
            "deleted_at": None,
            **fields,
        }
        self.docs[collection][doc_id] = doc
        return copy.deepcopy(doc)

    def _record(self, method: str, collection: str) -> None:
        self.calls[(method, collection)] += 1
        if collection in self.failing:
            raise StoreError(f"{collection} unavailable")

    def _matching(self, collection: str, where: Where | None) -> list[dict[str, Any]]:
        docs = list(self.docs[collection].values())
        if where is not None:
            docs = [doc for doc in docs if where.matches(doc)]
        return docs

    async def find_by_id(self, collection: str, id: Any) -> dict[str, Any] | None:
        self._record("find_by_id", collection)
        doc = self.docs[collection].get(normalize_tenant_id(id))
        return copy.deepcopy(doc) if doc is not None else None

    async def find(
        self,
        collection: str,
        where: Where | None = None,
        *,
        limit: int | None = None,
        skip: int = 0,
        sort: str | None = None,
    ) -> FindResult:
        self._record("find", collection)
        docs = self._matching(collection, where)
        docs.sort(key=lambda doc: doc["id"])
        if sort:
            field_name = sort.lstrip("-")
            docs.sort(
                key=lambda doc: (doc.get(field_name) is None, doc.get(field_name) or 0),
                reverse=sort.startswith("-"),
            )
        total = len(docs)
        docs = docs[skip:]
        if limit is not None:
            docs = docs[:limit]
        return FindResult(docs=copy.deepcopy(docs), total_docs=total)

    async def count(self, collection: str, where: Where | None = None) -> int:
        self._record("count", collection)
        return len(self._matching(collection, where))

    async def create(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        self._record("create", collection)
        return self.add(collection, **copy.deepcopy(data))

    async def update(self, collection: str, id: Any, data: dict[str, Any]) -> dict[str, Any] | None:
        self._record("update", collection)
        doc = self.docs[collection].get(normalize_tenant_id(id))
        if doc is None:
            return None
        doc.update(copy.deepcopy(data))
        return copy.deepcopy(doc)

    async def delete(self, collection: str, id: Any) -> bool:
        self._record("delete", collection)
        return self.docs[collection].pop(normalize_tenant_id(id), None) is not None


def make_user(
    id: int = 1,
    roles: str | None = None,
    tenants: list[dict[str, Any]] | None = None,
    **fields: Any,
) -> AuthUser:
    """Validated user, as the auth layer would hand it to the access layer."""
    return parse_user({"id": id, "roles": roles, "tenants": tenants or [], **fields})


def tenant_user(id: int, tenant: Any, *roles: str, **fields: Any) -> AuthUser:
    """Tenant-scoped user holding ``roles`` in one tenant."""
    return make_user(id, tenants=[{"tenant": tenant, "roles": list(roles)}], **fields)


def make_ctx(
    store: FakeStore,
    user: AuthUser | None = None,
    cookies: dict[str, str] | None = None,
    tenant: Any = None,
) -> RequestContext:
    """Request context with cookies given as a mapping."""
    header = "; ".join(f"{name}={value}" for name, value in (cookies or {}).items())
    return RequestContext(user=user, store=store, cookies=header, tenant=tenant)


def allows(result: Any, doc: dict[str, Any]) -> bool:
    """Whether an access result lets ``doc`` through."""
    if isinstance(result, bool):
        return result
    return result.matches(doc)
