"""Action descriptors and the declarative rule table behind authorization."""

from dataclasses import dataclass
from enum import Enum

from wealthmap.models.role import UserRole
from wealthmap.policy.permissions import Permission


class ActionKind(str, Enum):
    VIEW_PROPERTY = "view_property"
    SEARCH = "search"
    VIEW_OWNER = "view_owner"
    VIEW_WEALTH_DATA = "view_wealth_data"
    VIEW_OWNERSHIP_HISTORY = "view_ownership_history"
    EXPORT_DATA = "export_data"
    INVITE_USER = "invite_user"
    RESEND_INVITATION = "resend_invitation"
    REVOKE_INVITATION = "revoke_invitation"
    VIEW_INVITATIONS = "view_invitations"
    VIEW_EMPLOYEES = "view_employees"
    UPDATE_EMPLOYEE = "update_employee"
    MANAGE_COMPANY = "manage_company"
    UPDATE_DATA_ACCESS = "update_data_access"
    VIEW_USAGE_STATS = "view_usage_stats"
    VIEW_ACTIVITY_LOG = "view_activity_log"


class RoleGate(str, Enum):
    ANY = "any"
    ADMIN = "admin"
    ADMIN_OR_MANAGER = "admin_or_manager"


@dataclass(frozen=True)
class ActionRule:
    role_gate: RoleGate = RoleGate.ANY
    permission: Permission | None = None


ACTION_RULES: dict[ActionKind, ActionRule] = {
    ActionKind.VIEW_PROPERTY: ActionRule(permission=Permission.VIEW_PROPERTY),
    ActionKind.SEARCH: ActionRule(permission=Permission.VIEW_PROPERTY),
    ActionKind.VIEW_OWNER: ActionRule(permission=Permission.VIEW_PROPERTY),
    ActionKind.VIEW_WEALTH_DATA: ActionRule(permission=Permission.VIEW_WEALTH_DATA),
    ActionKind.VIEW_OWNERSHIP_HISTORY: ActionRule(permission=Permission.VIEW_OWNERSHIP_HISTORY),
    ActionKind.EXPORT_DATA: ActionRule(permission=Permission.EXPORT_DATA),
    ActionKind.INVITE_USER: ActionRule(RoleGate.ADMIN_OR_MANAGER, Permission.INVITE_USERS),
    ActionKind.RESEND_INVITATION: ActionRule(RoleGate.ADMIN_OR_MANAGER, Permission.INVITE_USERS),
    ActionKind.VIEW_INVITATIONS: ActionRule(RoleGate.ADMIN_OR_MANAGER, Permission.INVITE_USERS),
    ActionKind.REVOKE_INVITATION: ActionRule(RoleGate.ADMIN, Permission.INVITE_USERS),
    ActionKind.VIEW_EMPLOYEES: ActionRule(RoleGate.ADMIN_OR_MANAGER),
    ActionKind.UPDATE_EMPLOYEE: ActionRule(RoleGate.ADMIN),
    ActionKind.MANAGE_COMPANY: ActionRule(RoleGate.ADMIN),
    ActionKind.UPDATE_DATA_ACCESS: ActionRule(RoleGate.ADMIN),
    ActionKind.VIEW_USAGE_STATS: ActionRule(RoleGate.ADMIN),
    ActionKind.VIEW_ACTIVITY_LOG: ActionRule(RoleGate.ADMIN),
}


@dataclass(frozen=True)
class Action:
    """
    What an actor is trying to do.

    target_user_id/new_role/deactivate are only meaningful for
    UPDATE_EMPLOYEE, where they drive the self-modification guard.
    """

    kind: ActionKind
    target_company_id: int
    target_resource_type: str | None = None
    target_resource_id: int | None = None
    target_user_id: int | None = None
    new_role: UserRole | None = None
    deactivate: bool = False

    @property
    def rule(self) -> ActionRule:
        return ACTION_RULES[self.kind]
