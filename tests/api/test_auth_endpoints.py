"""
API tests for authentication endpoints.
"""

from datetime import datetime, timezone

import pytest
from httpx import AsyncClient

from tests.factories import DEFAULT_PASSWORD, TenantFactory, UserFactory, auth_headers


@pytest.mark.api
class TestLogin:
    """Test login endpoints."""

    async def test_login_json_success(self, client: AsyncClient, db_session):
        user = await UserFactory.create_super_admin(db_session)

        response = await client.post(
            "/api/v1/auth/login/json",
            json={"email": user.email, "password": DEFAULT_PASSWORD},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["access_token"]
        assert data["token_type"] == "bearer"
        assert data["tenant"] is None

    async def test_login_form_success(self, client: AsyncClient, db_session):
        """OAuth2 form login treats 'username' as the email."""
        user = await UserFactory.create_super_admin(db_session)

        response = await client.post(
            "/api/v1/auth/login",
            data={"username": user.email, "password": DEFAULT_PASSWORD},
        )

        assert response.status_code == 200
        assert "access_token" in response.json()

    async def test_login_wrong_password(self, client: AsyncClient, db_session):
        user = await UserFactory.create_super_admin(db_session)

        response = await client.post(
            "/api/v1/auth/login/json",
            json={"email": user.email, "password": "WrongPassword123!"},
        )

        assert response.status_code == 401

    async def test_trashed_user_cannot_login(self, client: AsyncClient, db_session):
        user = await UserFactory.create_super_admin(db_session, deleted_at=datetime.now(timezone.utc))

        response = await client.post(
            "/api/v1/auth/login/json",
            json={"email": user.email, "password": DEFAULT_PASSWORD},
        )

        assert response.status_code == 401

    async def test_login_on_tenant_domain_selects_tenant(self, client: AsyncClient, db_session):
        tenant = await TenantFactory.create(db_session, domain="acme.example.com")
        user = await UserFactory.create(db_session, tenant, ["tenant-admin"])

        response = await client.post(
            "/api/v1/auth/login/json",
            json={"email": user.email, "password": DEFAULT_PASSWORD},
            headers={"x-forwarded-host": "www.acme.example.com:443"},
        )

        assert response.status_code == 200
        assert response.json()["tenant"] == tenant.id
        assert response.cookies.get("payload-tenant") == str(tenant.id)

    async def test_login_on_foreign_tenant_domain(self, client: AsyncClient, db_session):
        await TenantFactory.create(db_session, domain="acme.example.com")
        other = await TenantFactory.create(db_session)
        user = await UserFactory.create(db_session, other, ["tenant-admin"])

        response = await client.post(
            "/api/v1/auth/login/json",
            json={"email": user.email, "password": DEFAULT_PASSWORD},
            headers={"x-forwarded-host": "acme.example.com"},
        )

        assert response.status_code == 200
        assert response.json()["tenant"] is None
        assert "payload-tenant" not in response.cookies


@pytest.mark.api
class TestCurrentUser:

    async def test_me(self, client: AsyncClient, db_session):
        tenant = await TenantFactory.create(db_session)
        user = await UserFactory.create(db_session, tenant, ["tenant-admin"])

        response = await client.get(
            "/api/v1/auth/me",
            headers={**auth_headers(user), "Cookie": f"payload-tenant={tenant.id}"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["email"] == user.email
        assert data["user"]["tenants"] == [{"tenant": tenant.id, "roles": ["tenant-admin"]}]
        assert "hashed_password" not in data["user"]
        assert data["tenant"] == tenant.id
        assert data["top_level_mode"] is False

    async def test_me_ignores_foreign_tenant_cookie(self, client: AsyncClient, db_session):
        tenant = await TenantFactory.create(db_session)
        other = await TenantFactory.create(db_session)
        user = await UserFactory.create(db_session, tenant, ["tenant-user"])

        response = await client.get(
            "/api/v1/auth/me",
            headers={**auth_headers(user), "Cookie": f"payload-tenant={other.id}"},
        )

        assert response.status_code == 200
        assert response.json()["tenant"] is None

    async def test_me_unauthorized(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me")
        assert response.status_code == 401

    async def test_invalid_token(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/auth/me",
            headers={"Authorization": "Bearer invalid.token.here"},
        )
        assert response.status_code == 401

    async def test_token_of_trashed_user_rejected(self, client: AsyncClient, db_session):
        user = await UserFactory.create_super_admin(db_session)
        headers = auth_headers(user)

        user.deleted_at = datetime.now(timezone.utc)
        await db_session.commit()

        response = await client.get("/api/v1/auth/me", headers=headers)
        assert response.status_code == 401

    async def test_logout_clears_tenant_cookies(self, client: AsyncClient, db_session):
        user = await UserFactory.create_super_admin(db_session)

        response = await client.post("/api/v1/auth/logout", headers=auth_headers(user))

        assert response.status_code == 200
        set_cookies = response.headers.get_list("set-cookie")
        assert any(cookie.startswith("payload-tenant=") for cookie in set_cookies)
        assert any(cookie.startswith("icc-top-level=") for cookie in set_cookies)


@pytest.mark.api
class TestBootstrap:
    """The first account can be created without logging in."""

    async def test_first_user_becomes_super_admin(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/users",
            json={"email": "first@example.com", "password": "Secret123"},
        )

        assert response.status_code == 201
        assert response.json()["roles"] == "super-admin"

        response = await client.post(
            "/api/v1/users",
            json={"email": "second@example.com", "password": "Secret123"},
        )
        assert response.status_code == 403

    async def test_weak_password(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/users",
            json={"email": "first@example.com", "password": "weak"},
        )

        assert response.status_code == 400
        assert response.json()["details"]["errors"]
