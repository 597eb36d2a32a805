"""
Role model.

Two tiers:
- top-level roles (super-admin, super-editor) live in the user's scalar
  ``roles`` field and span every tenant
- tenant roles live in the user's single tenant assignment entry

All checks are pure and accept loosely shaped input (validated users, raw
dicts, ORM rows, client form data). Anything that does not look like a role
grants nothing.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from tenantcms.access.ids import TenantId


class Role(str, Enum):
    """Closed set of role tags."""
    SUPER_ADMIN = "super-admin"
    SUPER_EDITOR = "super-editor"
    TENANT_ADMIN = "tenant-admin"
    # Frontend login only, no admin panel writes
    TENANT_USER = "tenant-user"
    # Legacy tag for a read-only tenant member, treated like tenant-user
    TENANT_VIEWER = "tenant-viewer"
    GUEST_WRITER = "guest-writer"


TOP_LEVEL_ROLES: frozenset[str] = frozenset({Role.SUPER_ADMIN.value, Role.SUPER_EDITOR.value})
TENANT_ROLES: frozenset[str] = frozenset({
    Role.TENANT_ADMIN.value,
    Role.TENANT_USER.value,
    Role.TENANT_VIEWER.value,
    Role.GUEST_WRITER.value,
})
MEMBER_ROLES: frozenset[str] = frozenset({Role.TENANT_USER.value, Role.TENANT_VIEWER.value})


@dataclass(frozen=True)
class TopLevelRole:
    """A global role, not bound to any tenant."""
    role: Role


@dataclass(frozen=True)
class TenantScopedRole:
    """Role tags held within exactly one tenant."""
    tenant_id: TenantId
    roles: frozenset[str]

    def has(self, role: Role) -> bool:
        return role.value in self.roles


UserRole = Union[TopLevelRole, TenantScopedRole]


class _TenantEntryRoles(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    roles: list[str] | None = None


class _TenantsWithRoles(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tenants: list[_TenantEntryRoles | None] | None = None


def _scalar_role(user: Any) -> str | None:
    if user is None:
        return None
    if isinstance(user, dict):
        value = user.get("roles")
    else:
        value = getattr(user, "roles", None)
    return value if isinstance(value, str) else None


def is_super_admin(user: Any) -> bool:
    """Check whether a user has the super-admin role."""
    return _scalar_role(user) == Role.SUPER_ADMIN.value


def is_super_editor(user: Any) -> bool:
    """Check whether a user has the super-editor role."""
    return _scalar_role(user) == Role.SUPER_EDITOR.value


def is_top_level_user(user: Any) -> bool:
    """Check if user is a top-level user (super-admin or super-editor)."""
    return is_super_admin(user) or is_super_editor(user)


def has_guest_writer_role(data: Any) -> bool:
    """
    Check whether any tenant entry carries the guest-writer role.

    Safe to call on client-submitted data: malformed input is "no match".
    """
    try:
        parsed = _TenantsWithRoles.model_validate(data)
    except ValidationError:
        return False

    for entry in parsed.tenants or []:
        if entry and entry.roles and Role.GUEST_WRITER.value in entry.roles:
            return True
    return False
