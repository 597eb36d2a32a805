"""
Tenant-role summary for the requesting user.

Every predicate needs the same handful of facts about the requester's tenant
assignments. ``get_user_tenant_data`` derives them once per request and
memoizes them on the request context.
"""

from dataclasses import dataclass

from tenantcms.access.context import CachePurpose, RequestContext
from tenantcms.access.ids import TenantId
from tenantcms.access.roles import (
    MEMBER_ROLES,
    Role,
    TenantScopedRole,
    TopLevelRole,
    UserRole,
    is_super_admin,
    is_super_editor,
)
from tenantcms.schemas.user import AuthUser


@dataclass(frozen=True)
class UserTenantData:
    """What the requester may do inside tenants."""
    all_tenant_ids: tuple[TenantId, ...] = ()
    admin_tenant_ids: tuple[TenantId, ...] = ()
    has_admin_role: bool = False
    has_viewer_role: bool = False
    has_tenant_user_role: bool = False
    has_guest_writer_role: bool = False

    @property
    def has_any_role(self) -> bool:
        return (
            self.has_admin_role
            or self.has_viewer_role
            or self.has_tenant_user_role
            or self.has_guest_writer_role
        )

    @property
    def single_tenant_id(self) -> TenantId | None:
        """The user's only tenant, when they have exactly one."""
        if len(self.all_tenant_ids) == 1:
            return self.all_tenant_ids[0]
        return None


EMPTY_TENANT_DATA = UserTenantData()


def build_user_tenant_data(user: AuthUser | None) -> UserTenantData:
    """Summarize tenant assignments. Pure; see ``get_user_tenant_data``."""
    if user is None:
        return EMPTY_TENANT_DATA

    all_ids: list[TenantId] = []
    admin_ids: list[TenantId] = []
    roles: set[str] = set()

    for entry in user.tenants:
        if entry.tenant not in all_ids:
            all_ids.append(entry.tenant)
        if Role.TENANT_ADMIN.value in entry.roles and entry.tenant not in admin_ids:
            admin_ids.append(entry.tenant)
        roles.update(entry.roles)

    return UserTenantData(
        all_tenant_ids=tuple(all_ids),
        admin_tenant_ids=tuple(admin_ids),
        has_admin_role=Role.TENANT_ADMIN.value in roles,
        has_viewer_role=bool(roles & MEMBER_ROLES),
        has_tenant_user_role=Role.TENANT_USER.value in roles,
        has_guest_writer_role=Role.GUEST_WRITER.value in roles,
    )


async def get_user_tenant_data(ctx: RequestContext) -> UserTenantData:
    """Tenant-role summary of ``ctx.user``, memoized per request."""
    if ctx.user is None:
        return EMPTY_TENANT_DATA

    async def compute() -> UserTenantData:
        return build_user_tenant_data(ctx.user)

    return await ctx.cache.get_or_compute(
        CachePurpose.USER_TENANT_DATA, str(ctx.user.id), compute
    )


def classify_user(user: AuthUser | None) -> UserRole | None:
    """
    Fold a user record into the role union.

    Returns:
        TopLevelRole for super-admins and super-editors,
        TenantScopedRole for users with a tenant assignment,
        None for everything else (no privileges)
    """
    if user is None:
        return None
    if is_super_admin(user):
        return TopLevelRole(Role.SUPER_ADMIN)
    if is_super_editor(user):
        return TopLevelRole(Role.SUPER_EDITOR)
    if not user.tenants:
        return None

    # Only one assignment is allowed; the first one wins if data says otherwise
    entry = user.tenants[0]
    return TenantScopedRole(tenant_id=entry.tenant, roles=frozenset(entry.roles))
