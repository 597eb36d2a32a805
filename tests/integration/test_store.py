"""
Integration tests for the SQLAlchemy store.

Filters produced by the access layer must select the same rows in SQL as
``Where.matches`` selects in memory.
"""

from datetime import datetime, timezone

import pytest

from tenantcms.access.store import StoreError
from tenantcms.access.where import And, Condition, Operator, Or, where_no_access, where_tenant_scoped
from tenantcms.store.sqlalchemy_store import SQLAlchemyStore


async def seed(store: SQLAlchemyStore) -> dict[str, dict]:
    acme = await store.create("tenants", {"name": "Acme", "slug": "acme", "allowed_collections": ["posts"]})
    globex = await store.create("tenants", {"name": "Globex", "slug": "globex"})

    root = await store.create("users", {
        "email": "root@example.com", "hashed_password": "x", "roles": "super-admin",
    })
    writer = await store.create("users", {
        "email": "writer@example.com", "hashed_password": "x",
        "tenants": [{"tenant": acme["id"], "roles": ["guest-writer"]}],
    })
    member = await store.create("users", {
        "email": "member@example.com", "hashed_password": "x",
        "tenants": [{"tenant": globex["id"], "roles": ["tenant-user"]}],
    })

    draft = await store.create("posts", {
        "title": "Draft 100% done", "slug": "draft", "tenant": acme["id"], "authors": [writer["id"]],
    })
    published = await store.create("posts", {
        "title": "Launch", "slug": "launch", "tenant": acme["id"], "status": "published",
        "published_at": datetime(2024, 6, 1, tzinfo=timezone.utc), "authors": [root["id"]],
    })
    other = await store.create("posts", {
        "title": "Elsewhere", "slug": "elsewhere", "tenant": globex["id"], "status": "published",
        "authors": [writer["id"], root["id"]],
    })
    return {
        "acme": acme, "globex": globex,
        "root": root, "writer": writer, "member": member,
        "draft": draft, "published": published, "other": other,
    }


async def ids(store, collection, where=None, **kwargs):
    result = await store.find(collection, where, **kwargs)
    return [doc["id"] for doc in result.docs]


@pytest.mark.integration
class TestSerialization:

    async def test_documents_expose_tenant_and_relations(self, sql_store):
        data = await seed(sql_store)

        writer = data["writer"]
        assert writer["tenants"] == [{"tenant": data["acme"]["id"], "roles": ["guest-writer"]}]
        assert "hashed_password" not in writer
        assert data["draft"]["tenant"] == data["acme"]["id"]
        assert data["other"]["authors"] == sorted([writer["id"], data["root"]["id"]])
        assert data["draft"]["status"] == "draft"
        assert data["draft"]["deleted_at"] is None

    async def test_find_by_id(self, sql_store):
        data = await seed(sql_store)

        assert (await sql_store.find_by_id("tenants", str(data["acme"]["id"])))["slug"] == "acme"
        assert await sql_store.find_by_id("tenants", 999) is None
        assert await sql_store.find_by_id("tenants", "acme") is None

    async def test_unknown_collection(self, sql_store):
        with pytest.raises(StoreError):
            await sql_store.find("widgets")


@pytest.mark.integration
class TestCompileWhere:

    async def test_tenant_scoped(self, sql_store):
        data = await seed(sql_store)
        await sql_store.update("posts", data["published"]["id"], {"deleted_at": datetime.now(timezone.utc)})

        where = where_tenant_scoped((data["acme"]["id"],))
        assert await ids(sql_store, "posts", where) == [data["draft"]["id"]]

    async def test_relationship_path(self, sql_store):
        data = await seed(sql_store)

        where = Condition("tenants.tenant", Operator.IN, (data["acme"]["id"],))
        assert await ids(sql_store, "users", where) == [data["writer"]["id"]]

        where = Condition("tenants.tenant", Operator.NOT_EQUALS, data["acme"]["id"])
        assert await ids(sql_store, "users", where) == [data["root"]["id"], data["member"]["id"]]

    async def test_authors_contains(self, sql_store):
        data = await seed(sql_store)

        where = Condition("authors", Operator.CONTAINS, data["writer"]["id"])
        assert await ids(sql_store, "posts", where) == [data["draft"]["id"], data["other"]["id"]]

    async def test_not_in_includes_null(self, sql_store):
        data = await seed(sql_store)

        where = Condition("roles", Operator.NOT_IN, ("super-admin",))
        assert await ids(sql_store, "users", where) == [data["writer"]["id"], data["member"]["id"]]

    async def test_or_and_exists(self, sql_store):
        data = await seed(sql_store)

        where = And((
            Condition("authors", Operator.CONTAINS, data["writer"]["id"]),
            Or((
                Condition("status", Operator.EQUALS, "published"),
                Condition("published_at", Operator.EXISTS, True),
            )),
        ))
        assert await sql_store.count("posts", where) == 1

    async def test_text_contains_escapes_wildcards(self, sql_store):
        data = await seed(sql_store)

        assert await ids(sql_store, "posts", Condition("title", Operator.CONTAINS, "100%")) == [data["draft"]["id"]]
        assert await ids(sql_store, "posts", Condition("title", Operator.CONTAINS, "LAUNCH")) == [data["published"]["id"]]

    async def test_string_ids_coerced(self, sql_store):
        data = await seed(sql_store)

        assert await ids(sql_store, "posts", Condition("tenant", Operator.EQUALS, str(data["globex"]["id"]))) == [data["other"]["id"]]
        assert await ids(sql_store, "posts", Condition("tenant", Operator.EQUALS, "globex")) == []

    async def test_no_access_filter_matches_nothing(self, sql_store):
        await seed(sql_store)
        assert await sql_store.count("posts", where_no_access) == 0

    async def test_unknown_field(self, sql_store):
        with pytest.raises(ValueError):
            await sql_store.find("posts", Condition("secret", Operator.EQUALS, 1))

    async def test_sort_skip_limit(self, sql_store):
        data = await seed(sql_store)

        result = await sql_store.find("posts", sort="-title", skip=1, limit=1)
        assert result.total_docs == 3
        assert [doc["id"] for doc in result.docs] == [data["other"]["id"]]


@pytest.mark.integration
class TestWrites:

    async def test_update_replaces_assignments(self, sql_store):
        data = await seed(sql_store)

        updated = await sql_store.update("users", data["member"]["id"], {
            "tenants": [{"tenant": data["acme"]["id"], "roles": ["tenant-admin"]}],
        })
        assert updated["tenants"] == [{"tenant": data["acme"]["id"], "roles": ["tenant-admin"]}]

    async def test_update_authors(self, sql_store):
        data = await seed(sql_store)

        updated = await sql_store.update("posts", data["draft"]["id"], {"authors": [data["member"]["id"], "bogus"]})
        assert updated["authors"] == [data["member"]["id"]]

    async def test_update_missing(self, sql_store):
        assert await sql_store.update("pages", 999, {"title": "x"}) is None

    async def test_delete(self, sql_store):
        data = await seed(sql_store)

        assert await sql_store.delete("posts", data["draft"]["id"]) is True
        assert await sql_store.delete("posts", data["draft"]["id"]) is False
        assert await sql_store.find_by_id("posts", data["draft"]["id"]) is None
