import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from wealthmap.core.clock import utcnow
from wealthmap.core.exceptions import NotFoundException, ValidationException
from wealthmap.models.activity_log import ActivityLog, ActivityType
from wealthmap.models.actor import Actor
from wealthmap.models.company import Company
from wealthmap.models.company_policy import CompanyPolicy
from wealthmap.models.invitation import InvitationStatus
from wealthmap.models.user import User
from wealthmap.policy.actions import Action, ActionKind
from wealthmap.policy.evaluator import PolicyEvaluator
from wealthmap.policy.scope import RawQuery, scope
from wealthmap.repositories.activity_log_repository import ActivityLogRepository
from wealthmap.repositories.company_repository import CompanyRepository
from wealthmap.repositories.invitation_repository import InvitationRepository
from wealthmap.repositories.property_repository import PropertyRepository
from wealthmap.repositories.user_repository import UserRepository
from wealthmap.schemas.company_schemas import (
    CompanyUpdate,
    DataAccessUpdate,
    EmployeeUpdate,
    UsageStats,
)

logger = logging.getLogger(__name__)


def month_start() -> datetime:
    """First instant of the current calendar month (naive UTC)."""
    return utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class CompanyService:
    """Company profile, data-access policy and employee administration"""

    def __init__(self, db: Session, evaluator: PolicyEvaluator):
        self.db = db
        self.evaluator = evaluator
        self.company_repo = CompanyRepository(db)
        self.user_repo = UserRepository(db)
        self.invitation_repo = InvitationRepository(db)
        self.activity_repo = ActivityLogRepository(db)
        self.property_repo = PropertyRepository(db)

    def _company(self, actor: Actor) -> Company:
        company = self.company_repo.get_by_id(actor.company_id)
        if company is None:
            raise NotFoundException(f"Company {actor.company_id} not found")
        return company

    def get_company(self, actor: Actor) -> Company:
        """Any member may read their own company profile."""
        return self._company(actor)

    def update_company(
        self, update: CompanyUpdate, actor: Actor, policy: CompanyPolicy
    ) -> Company:
        self.evaluator.require(
            actor,
            Action(ActionKind.MANAGE_COMPANY, actor.company_id, "company", actor.company_id),
            policy,
        )
        company = self._company(actor)
        for key, value in update.model_dump(exclude_unset=True).items():
            if key == "name" and value is None:
                continue
            setattr(company, key, value)
        return self.company_repo.update(company)

    def get_data_access(self, actor: Actor) -> Company:
        return self._company(actor)

    def update_data_access(
        self, update: DataAccessUpdate, actor: Actor, policy: CompanyPolicy
    ) -> Company:
        """
        Change the company's data-access policy (ADMIN only).

        Raises:
            ValidationException: If the resulting value range is inverted
        """
        self.evaluator.require(
            actor,
            Action(ActionKind.UPDATE_DATA_ACCESS, actor.company_id, "company", actor.company_id),
            policy,
        )
        company = self._company(actor)
        changes = update.model_dump(exclude_unset=True)

        min_value = changes.get("min_value_threshold", company.min_value_threshold)
        max_value = changes.get("max_value_threshold", company.max_value_threshold)
        if min_value is not None and max_value is not None and min_value > max_value:
            raise ValidationException("min_value_threshold cannot exceed max_value_threshold")

        for key, value in changes.items():
            if key == "allowed_property_types" and value is not None:
                value = [t.value for t in update.allowed_property_types]
            elif key == "geographic_restrictions" and value is not None:
                # exclude_unset drops the nested defaults too
                value = update.geographic_restrictions.model_dump()
                value = {
                    "states": [s.upper() for s in value["states"]],
                    "countries": [c.upper() for c in value["countries"]],
                    "zip_codes": [z.strip() for z in value["zip_codes"]],
                }
            elif value is None and key not in (
                "min_value_threshold",
                "max_value_threshold",
                "geographic_restrictions",
            ):
                # Non-nullable policy columns ignore explicit nulls
                continue
            setattr(company, key, value)

        company = self.company_repo.update(company)
        logger.info(
            "Company %s data access updated by user %s: %s",
            company.id,
            actor.user_id,
            sorted(changes),
        )
        return company

    def list_employees(self, actor: Actor, policy: CompanyPolicy) -> list[User]:
        self.evaluator.require(
            actor, Action(ActionKind.VIEW_EMPLOYEES, actor.company_id, "user"), policy
        )
        return self.user_repo.get_company_users(actor.company_id)

    def update_employee(
        self, user_id: int, update: EmployeeUpdate, actor: Actor, policy: CompanyPolicy
    ) -> User:
        """
        Update another employee's role, active flag or permission overrides.

        The target is looked up without a company filter so that a request for
        a user of another company is denied as cross-tenant rather than hidden.

        Raises:
            NotFoundException: Unknown user
            ForbiddenException: Denied by the policy evaluator
        """
        target = self.user_repo.get_by_id(user_id)
        if target is None:
            raise NotFoundException(f"User {user_id} not found")

        self.evaluator.require(
            actor,
            Action(
                ActionKind.UPDATE_EMPLOYEE,
                target_company_id=target.company_id,
                target_resource_type="user",
                target_resource_id=target.id,
                target_user_id=target.id,
                new_role=update.role,
                deactivate=update.is_active is False,
            ),
            policy,
        )

        if update.role is not None:
            target.role = update.role
        if update.is_active is not None:
            target.is_active = update.is_active
        if update.permission_overrides is not None:
            target.permission_overrides = dict(update.permission_overrides)

        target = self.user_repo.update(target)
        logger.info("User %s updated by admin %s", target.id, actor.user_id)
        return target

    def usage_stats(self, actor: Actor, policy: CompanyPolicy) -> UsageStats:
        self.evaluator.require(
            actor, Action(ActionKind.VIEW_USAGE_STATS, actor.company_id, "company"), policy
        )
        company_id = actor.company_id
        pending = [
            inv
            for inv in self.invitation_repo.get_company_invitations(
                company_id, InvitationStatus.PENDING
            )
            if inv.expires_at > utcnow()
        ]
        return UsageStats(
            total_users=self.user_repo.count_company_users(company_id),
            active_users=self.user_repo.count_company_users(company_id, active_only=True),
            users_active_last_30_days=self.user_repo.count_company_users(
                company_id, logged_in_since=utcnow() - timedelta(days=30)
            ),
            pending_invitations=len(pending),
            exports_this_month=self.activity_repo.count_actions(
                company_id, ActivityType.PROPERTY_EXPORT.value, since=month_start()
            ),
            max_exports_per_month=policy.max_exports_per_month,
            visible_properties_by_type=self.property_repo.count_by_type(
                scope(actor, policy, RawQuery())
            ),
        )

    def activity(
        self,
        actor: Actor,
        policy: CompanyPolicy,
        action: str | None = None,
        user_id: int | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[ActivityLog], int]:
        self.evaluator.require(
            actor, Action(ActionKind.VIEW_ACTIVITY_LOG, actor.company_id, "activity_log"), policy
        )
        return self.activity_repo.get_company_activity(
            actor.company_id, action=action, user_id=user_id, limit=limit, offset=offset
        )
