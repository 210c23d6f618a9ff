"""
Authorization policy evaluator.

Single place where "may this actor do this?" is answered. Rules are evaluated
in priority order and the first one that matches decides; if none match the
action is allowed.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from wealthmap.core.exceptions import (
    AccountDeactivatedException,
    CrossTenantForbiddenException,
    ForbiddenException,
    InsufficientRoleException,
    SelfModificationForbiddenException,
)
from wealthmap.models.actor import Actor
from wealthmap.models.company_policy import CompanyPolicy
from wealthmap.models.role import UserRole
from wealthmap.policy.actions import Action, ActionKind, RoleGate

logger = logging.getLogger(__name__)


class DenyReason(str, Enum):
    ACCOUNT_INACTIVE = "account_inactive"
    INSUFFICIENT_ROLE = "insufficient_role"
    SELF_MODIFICATION_FORBIDDEN = "self_modification_forbidden"
    CROSS_TENANT_FORBIDDEN = "cross_tenant_forbidden"
    MFA_REQUIRED = "mfa_required"
    PERMISSION_DENIED = "permission_denied"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: DenyReason | None = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason) -> "Decision":
        return cls(allowed=False, reason=reason)


class ActivityRecorder(Protocol):
    def record(self, user_id: int, company_id: int, action: str, details: dict) -> None: ...


Rule = Callable[[Actor, Action, CompanyPolicy | None], DenyReason | None]


def _inactive(actor: Actor, action: Action, policy: CompanyPolicy | None) -> DenyReason | None:
    company_active = actor.company_active and (policy is None or policy.is_active)
    if not actor.is_active or not company_active:
        return DenyReason.ACCOUNT_INACTIVE
    return None


def _admin_only(actor: Actor, action: Action, policy: CompanyPolicy | None) -> DenyReason | None:
    if action.rule.role_gate == RoleGate.ADMIN and not actor.is_admin():
        return DenyReason.INSUFFICIENT_ROLE
    return None


def _admin_or_manager(
    actor: Actor, action: Action, policy: CompanyPolicy | None
) -> DenyReason | None:
    if action.rule.role_gate == RoleGate.ADMIN_OR_MANAGER and not actor.is_admin_or_manager():
        return DenyReason.INSUFFICIENT_ROLE
    return None


def _self_modification(
    actor: Actor, action: Action, policy: CompanyPolicy | None
) -> DenyReason | None:
    if action.kind != ActionKind.UPDATE_EMPLOYEE or action.target_user_id != actor.user_id:
        return None
    demotes = action.new_role is not None and action.new_role != UserRole.ADMIN
    if actor.is_admin() and (demotes or action.deactivate):
        return DenyReason.SELF_MODIFICATION_FORBIDDEN
    return None


def _cross_tenant(actor: Actor, action: Action, policy: CompanyPolicy | None) -> DenyReason | None:
    if action.target_company_id != actor.company_id:
        return DenyReason.CROSS_TENANT_FORBIDDEN
    return None


def _mfa(actor: Actor, action: Action, policy: CompanyPolicy | None) -> DenyReason | None:
    if policy is not None and policy.require_mfa and not actor.mfa_verified:
        return DenyReason.MFA_REQUIRED
    return None


def _permission(actor: Actor, action: Action, policy: CompanyPolicy | None) -> DenyReason | None:
    required = action.rule.permission
    if required is not None and not actor.has_permission(required):
        return DenyReason.PERMISSION_DENIED
    return None


# Priority order, first match wins
RULES: tuple[Rule, ...] = (
    _inactive,
    _admin_only,
    _admin_or_manager,
    _self_modification,
    _cross_tenant,
    _mfa,
    _permission,
)

_DENY_EXCEPTIONS = {
    DenyReason.ACCOUNT_INACTIVE: (AccountDeactivatedException, "Account is deactivated"),
    DenyReason.INSUFFICIENT_ROLE: (InsufficientRoleException, "Your role does not allow this action"),
    DenyReason.SELF_MODIFICATION_FORBIDDEN: (
        SelfModificationForbiddenException,
        "Admins cannot demote or deactivate themselves",
    ),
    DenyReason.CROSS_TENANT_FORBIDDEN: (
        CrossTenantForbiddenException,
        "Cannot access another company's data",
    ),
    DenyReason.MFA_REQUIRED: (ForbiddenException, "Multi-factor authentication required"),
    DenyReason.PERMISSION_DENIED: (ForbiddenException, "Missing permission for this action"),
}


class PolicyEvaluator:
    """
    Evaluates actions against the rule list and records every decision.

    Recording is best effort: a failing recorder is logged and ignored, the
    decision is still returned.
    """

    def __init__(self, recorder: ActivityRecorder | None = None, rules: tuple[Rule, ...] = RULES):
        self.recorder = recorder
        self.rules = rules

    def evaluate(
        self, actor: Actor, action: Action, policy: CompanyPolicy | None = None
    ) -> Decision:
        """Pure evaluation, no side effects."""
        for rule in self.rules:
            reason = rule(actor, action, policy)
            if reason is not None:
                return Decision.deny(reason)
        return Decision.allow()

    def authorize(
        self,
        actor: Actor,
        action: Action,
        policy: CompanyPolicy | None = None,
        details: dict | None = None,
    ) -> Decision:
        decision = self.evaluate(actor, action, policy)
        self._record(actor, action, decision, details)
        if not decision.allowed:
            logger.info(
                "Denied %s for user %s in company %s: %s",
                action.kind.value,
                actor.user_id,
                actor.company_id,
                decision.reason.value,
            )
        return decision

    def require(
        self,
        actor: Actor,
        action: Action,
        policy: CompanyPolicy | None = None,
        details: dict | None = None,
    ) -> None:
        """
        Authorize and raise on deny.

        Raises:
            ForbiddenException (or a subclass matching the deny reason)
        """
        decision = self.authorize(actor, action, policy, details)
        if decision.allowed:
            return
        exc_class, message = _DENY_EXCEPTIONS[decision.reason]
        raise exc_class(message, reason=decision.reason.value)

    def _record(
        self, actor: Actor, action: Action, decision: Decision, details: dict | None
    ) -> None:
        if self.recorder is None:
            return
        payload = {
            "decision": "allow" if decision.allowed else "deny",
            "reason": decision.reason.value if decision.reason else None,
            "resource_type": action.target_resource_type,
            "resource_id": action.target_resource_id,
            "target_company_id": action.target_company_id,
        }
        if action.target_user_id is not None:
            payload["target_user_id"] = action.target_user_id
        if details:
            payload.update(details)
        try:
            self.recorder.record(actor.user_id, actor.company_id, action.kind.value, payload)
        except Exception:
            logger.exception("Failed to record authorization decision for %s", action.kind.value)
