"""
Seed a development database with two tenants and one user per role.

Usage:
    python scripts/seed_db.py
"""

import asyncio

from sqlalchemy import select

from tenantcms.access.roles import Role
from tenantcms.collections import DocStatus
from tenantcms.core.database import db_manager
from tenantcms.core.security import hash_password
from tenantcms.models.content import Page, Post
from tenantcms.models.tenant import Tenant
from tenantcms.models.user import User, UserTenant


async def seed_data() -> None:
    """Create initial development data."""
    print("🌱 Seeding database...")

    db_manager.init()
    await db_manager.create_all()

    async for db in db_manager.get_session():
        result = await db.execute(select(Tenant))
        if result.first():
            print("⚠️  Database already contains data. Skipping seed.")
            break

        acme = Tenant(
            name="Acme Corporation",
            slug="acme",
            domain="acme.localhost",
            allowed_collections=["pages", "posts", "media", "categories"],
            allow_public_read=["pages", "posts"],
        )
        globex = Tenant(
            name="Globex",
            slug="globex",
            domain="globex.localhost",
            allowed_collections=None,
            allow_public_read=[],
        )
        db.add_all([acme, globex])
        await db.flush()

        root = User(
            email="admin@example.com",
            hashed_password=hash_password("Admin123!"),
            name="Super Admin",
            roles=Role.SUPER_ADMIN.value,
        )
        editor = User(
            email="editor@acme.example.com",
            hashed_password=hash_password("Editor123!"),
            name="Acme Editor",
            tenants=[UserTenant(tenant_id=acme.id, roles=[Role.TENANT_ADMIN.value])],
        )
        writer = User(
            email="writer@acme.example.com",
            hashed_password=hash_password("Writer123!"),
            name="Guest Writer",
            guest_writer_post_limit=2,
            tenants=[UserTenant(tenant_id=acme.id, roles=[Role.GUEST_WRITER.value])],
        )
        db.add_all([root, editor, writer])
        await db.flush()

        db.add_all([
            Page(tenant_id=acme.id, title="Home", slug="home", status=DocStatus.PUBLISHED.value),
            Page(tenant_id=globex.id, title="Home", slug="home", status=DocStatus.PUBLISHED.value),
            Post(
                tenant_id=acme.id,
                title="Hello from Acme",
                slug="hello",
                status=DocStatus.DRAFT.value,
                authors=[writer],
            ),
        ])

        print(f"✅ Created tenants: {acme.slug}, {globex.slug}")
        print(f"✅ Created super-admin: {root.email} (password: Admin123!)")
        print(f"✅ Created tenant-admin: {editor.email} (password: Editor123!)")
        print(f"✅ Created guest-writer: {writer.email} (password: Writer123!)")

    await db_manager.close()
    print("🎉 Seeding complete!")


if __name__ == "__main__":
    asyncio.run(seed_data())
