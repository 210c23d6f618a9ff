import logging
from typing import Callable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from wealthmap.config import settings
from wealthmap.core.exceptions import (
    AccountDeactivatedException,
    ConflictException,
    DuplicatePendingInvitationException,
    InsufficientRoleException,
    InvitationExpiredException,
    NotFoundException,
    StorageException,
    ValidationException,
)
from wealthmap.models.activity_log import ActivityType
from wealthmap.models.actor import Actor
from wealthmap.models.company_policy import CompanyPolicy
from wealthmap.models.invitation import Invitation, InvitationStatus
from wealthmap.models.role import UserRole
from wealthmap.models.user import User
from wealthmap.policy.actions import Action, ActionKind
from wealthmap.policy.evaluator import PolicyEvaluator
from wealthmap.policy.invitation_lifecycle import InvitationLifecycle
from wealthmap.repositories.invitation_repository import InvitationRepository
from wealthmap.repositories.user_repository import UserRepository
from wealthmap.schemas.invitation_schemas import (
    InvitationAccept,
    InvitationCreate,
    InvitationPreview,
)
from wealthmap.services.activity_recorder import ActivityRecorder
from wealthmap.services.auth_service import build_user, issue_token

logger = logging.getLogger(__name__)


def invitation_url(invitation: Invitation) -> str:
    return f"{settings.INVITATION_ACCEPT_URL}?token={invitation.token}"


class InvitationService:
    """
    Invitation management for company admins/managers and acceptance by invitees.

    Status changes go through InvitationLifecycle; this service owns
    persistence and the surrounding transaction.
    """

    def __init__(
        self,
        db: Session,
        evaluator: PolicyEvaluator | None = None,
        recorder: ActivityRecorder | None = None,
        lifecycle: InvitationLifecycle | None = None,
    ):
        self.db = db
        self.evaluator = evaluator
        self.recorder = recorder
        self.lifecycle = lifecycle or InvitationLifecycle()
        self.invitation_repo = InvitationRepository(db)
        self.user_repo = UserRepository(db)

    def create_invitation(
        self, data: InvitationCreate, actor: Actor, policy: CompanyPolicy
    ) -> Invitation:
        """
        Create a pending invitation.

        Raises:
            InsufficientRoleException: Manager trying to invite an admin
            ValidationException: Email already belongs to a user
            DuplicatePendingInvitationException: A pending invitation exists
        """
        email = data.email.strip().lower()
        self.evaluator.require(
            actor,
            Action(ActionKind.INVITE_USER, actor.company_id, "invitation"),
            policy,
            details={"email": email, "role": data.role.value},
        )
        if data.role == UserRole.ADMIN and not actor.is_admin():
            raise InsufficientRoleException("Only admins can invite admins")

        if self.user_repo.get_by_email(email) is not None:
            raise ValidationException("A user with this email already exists")

        existing = self.invitation_repo.get_pending(email, actor.company_id)
        if existing is not None:
            if not self.lifecycle.refresh(existing):
                raise DuplicatePendingInvitationException(
                    f"A pending invitation already exists for {email}"
                )
            # Lazily expired; persist so the new row does not collide
            self.db.commit()

        invitation = self.lifecycle.create(
            email=email,
            company_id=actor.company_id,
            invited_by_id=actor.user_id,
            role=data.role,
            expire_days=policy.invitation_expire_days,
            first_name=data.first_name,
            last_name=data.last_name,
            message=data.message,
        )
        try:
            invitation = self.invitation_repo.create(invitation)
        except IntegrityError:
            # Lost a race against a concurrent invite for the same email
            self.db.rollback()
            raise DuplicatePendingInvitationException(
                f"A pending invitation already exists for {email}"
            )

        logger.info(
            "Invitation %s created for company %s by user %s",
            invitation.id,
            actor.company_id,
            actor.user_id,
        )
        self._record(
            actor.user_id,
            actor.company_id,
            ActivityType.USER_INVITATION,
            {"invitation_id": invitation.id, "email": email, "role": data.role.value},
        )
        return invitation

    def list_invitations(
        self,
        actor: Actor,
        policy: CompanyPolicy,
        status: InvitationStatus | None = None,
    ) -> list[Invitation]:
        """List company invitations, expiring overdue pending ones on the way."""
        self.evaluator.require(
            actor, Action(ActionKind.VIEW_INVITATIONS, actor.company_id, "invitation"), policy
        )
        invitations = self.invitation_repo.get_company_invitations(actor.company_id)
        changed = [inv for inv in invitations if self.lifecycle.refresh(inv)]
        if changed:
            self.db.commit()
            logger.info("Expired %d overdue invitations for company %s", len(changed), actor.company_id)
        if status is not None:
            invitations = [inv for inv in invitations if inv.status == status]
        return invitations

    def _load_for(
        self, invitation_id: int, kind: ActionKind, actor: Actor, policy: CompanyPolicy
    ) -> Invitation:
        invitation = self.invitation_repo.get_by_id(invitation_id)
        if invitation is None:
            raise NotFoundException(f"Invitation {invitation_id} not found")
        self.evaluator.require(
            actor,
            Action(kind, invitation.company_id, "invitation", invitation.id),
            policy,
        )
        return invitation

    def _apply(self, invitation: Invitation, transition: Callable[[Invitation], Invitation]) -> Invitation:
        """Run a lifecycle transition, persisting a lazy expiry even if it then fails."""
        try:
            transition(invitation)
        except ConflictException:
            if self.db.is_modified(invitation):
                self.db.commit()
            raise
        return self.invitation_repo.update(invitation)

    def resend_invitation(
        self, invitation_id: int, actor: Actor, policy: CompanyPolicy
    ) -> Invitation:
        invitation = self._load_for(invitation_id, ActionKind.RESEND_INVITATION, actor, policy)
        invitation = self._apply(
            invitation,
            lambda inv: self.lifecycle.resend(inv, policy.invitation_expire_days),
        )
        logger.info("Invitation %s resent (count=%s)", invitation.id, invitation.resend_count)
        return invitation

    def revoke_invitation(
        self, invitation_id: int, actor: Actor, policy: CompanyPolicy
    ) -> Invitation:
        invitation = self._load_for(invitation_id, ActionKind.REVOKE_INVITATION, actor, policy)
        invitation = self._apply(invitation, self.lifecycle.revoke)
        logger.info("Invitation %s revoked by user %s", invitation.id, actor.user_id)
        return invitation

    def get_by_token(self, token: str) -> Invitation:
        invitation = self.invitation_repo.get_by_token(token)
        if invitation is None:
            raise NotFoundException("Invitation not found")
        if self.lifecycle.refresh(invitation):
            self.db.commit()
        return invitation

    def preview(self, token: str) -> InvitationPreview:
        """Public details shown on the acceptance page."""
        invitation = self.get_by_token(token)
        return InvitationPreview(
            email=invitation.email,
            first_name=invitation.first_name,
            last_name=invitation.last_name,
            role=invitation.role,
            status=invitation.status,
            expires_at=invitation.expires_at,
            company_name=invitation.company.name,
            invited_by_name=invitation.invited_by.full_name,
            message=invitation.message,
        )

    def accept_invitation(self, data: InvitationAccept) -> tuple[User, str]:
        """
        Create the invitee's account and mark the invitation accepted.

        Both happen in one transaction: if the user cannot be created the
        invitation stays pending.

        Raises:
            NotFoundException: Unknown token
            InvitationExpiredException: Past expiry (invitation is left expired)
            InvitationAlreadyResolvedException: Not pending
            AccountDeactivatedException: Company deactivated
            ValidationException: Email already registered
            StorageException: The account could not be written
        """
        invitation = self.invitation_repo.get_by_token(data.token)
        if invitation is None:
            raise NotFoundException("Invitation not found")

        try:
            self.lifecycle.accept(invitation)
        except InvitationExpiredException:
            self.db.commit()
            raise

        if not invitation.company.is_active:
            self.db.rollback()
            raise AccountDeactivatedException("Company account is deactivated")

        if self.user_repo.get_by_email(invitation.email) is not None:
            self.db.rollback()
            raise ValidationException("A user with this email already exists")

        user = build_user(
            email=invitation.email,
            password=data.password,
            first_name=data.first_name or invitation.first_name or invitation.email.split("@")[0],
            last_name=data.last_name or invitation.last_name or "",
            role=invitation.role,
            company_id=invitation.company_id,
        )
        try:
            self.user_repo.add(user)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationException("A user with this email already exists")
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Could not create user for invitation %s", invitation.id)
            raise StorageException("Could not create account, please try again")

        self.db.refresh(user)
        logger.info("Invitation %s accepted, user %s created", invitation.id, user.id)
        self._record(
            user.id,
            user.company_id,
            ActivityType.USER_INVITATION_ACCEPTED,
            {"invitation_id": invitation.id, "role": user.role.value},
        )
        return user, issue_token(user)

    def _record(self, user_id: int, company_id: int, activity: ActivityType, details: dict) -> None:
        if self.recorder:
            self.recorder.record(user_id, company_id, activity.value, details)
