"""Named permissions and how a user's effective set is computed."""

from enum import Enum

from wealthmap.models.company_policy import CompanyPolicy
from wealthmap.models.role import UserRole


class Permission(str, Enum):
    VIEW_PROPERTY = "view_property"
    VIEW_WEALTH_DATA = "view_wealth_data"
    VIEW_OWNERSHIP_HISTORY = "view_ownership_history"
    EXPORT_DATA = "export_data"
    INVITE_USERS = "invite_users"


_DATA_PERMISSIONS = frozenset(
    {
        Permission.VIEW_PROPERTY,
        Permission.VIEW_WEALTH_DATA,
        Permission.VIEW_OWNERSHIP_HISTORY,
        Permission.EXPORT_DATA,
    }
)

ROLE_DEFAULT_PERMISSIONS: dict[UserRole, frozenset[Permission]] = {
    UserRole.ADMIN: frozenset(Permission),
    UserRole.MANAGER: _DATA_PERMISSIONS | {Permission.INVITE_USERS},
    UserRole.ANALYST: _DATA_PERMISSIONS,
    UserRole.USER: _DATA_PERMISSIONS,
    UserRole.VIEWER: frozenset({Permission.VIEW_PROPERTY}),
}


def policy_permissions(policy: CompanyPolicy) -> frozenset[Permission]:
    """Permissions the company policy leaves available to anyone in the company."""
    allowed = set(Permission)
    if not policy.wealth_data_access:
        allowed.discard(Permission.VIEW_WEALTH_DATA)
    if not policy.ownership_history_access:
        allowed.discard(Permission.VIEW_OWNERSHIP_HISTORY)
    if not policy.export_enabled:
        allowed.discard(Permission.EXPORT_DATA)
    return frozenset(allowed)


def override_permissions(overrides: dict | None) -> frozenset[Permission]:
    """
    Permissions left after applying per-user overrides.

    An override set to False removes the permission. True is accepted but
    cannot grant anything the role or company does not already allow, since
    the result is intersected with both.
    """
    allowed = set(Permission)
    for name, granted in (overrides or {}).items():
        try:
            permission = Permission(name)
        except ValueError:
            continue
        if not granted:
            allowed.discard(permission)
    return frozenset(allowed)


def effective_permissions(
    role: UserRole, overrides: dict | None, policy: CompanyPolicy
) -> frozenset[Permission]:
    """Intersection of role defaults, per-user overrides and company policy."""
    return (
        ROLE_DEFAULT_PERMISSIONS[role]
        & override_permissions(overrides)
        & policy_permissions(policy)
    )
