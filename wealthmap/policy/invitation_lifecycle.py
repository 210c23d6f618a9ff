"""
Invitation lifecycle state machine.

    pending --accept--> accepted
    pending --expire--> expired      (lazy, on read past expires_at; idempotent)
    pending --revoke--> revoked
    pending --resend--> pending      (new token, new expiry, resend_count + 1)

accepted, expired and revoked are terminal. Transitions mutate the ORM object
in place; persisting is the caller's job.
"""

from datetime import datetime, timedelta
from typing import Callable

from wealthmap.core.clock import utcnow
from wealthmap.core.exceptions import (
    InvitationAlreadyResolvedException,
    InvitationExpiredException,
)
from wealthmap.core.security import generate_invitation_token
from wealthmap.models.invitation import Invitation, InvitationStatus
from wealthmap.models.role import UserRole

TRANSITIONS: dict[tuple[InvitationStatus, str], InvitationStatus] = {
    (InvitationStatus.PENDING, "accept"): InvitationStatus.ACCEPTED,
    (InvitationStatus.PENDING, "expire"): InvitationStatus.EXPIRED,
    (InvitationStatus.PENDING, "revoke"): InvitationStatus.REVOKED,
    (InvitationStatus.PENDING, "resend"): InvitationStatus.PENDING,
}

# States from which a brand-new invitation may be issued for the same email
REINVITABLE_STATES = frozenset({InvitationStatus.EXPIRED, InvitationStatus.REVOKED})


class InvitationLifecycle:
    """Applies lifecycle transitions using an injectable clock."""

    def __init__(
        self,
        clock: Callable[[], datetime] = utcnow,
        token_factory: Callable[[], str] = generate_invitation_token,
    ):
        self.clock = clock
        self.token_factory = token_factory

    def create(
        self,
        email: str,
        company_id: int,
        invited_by_id: int,
        role: UserRole,
        expire_days: int,
        first_name: str = "",
        last_name: str = "",
        message: str | None = None,
    ) -> Invitation:
        return Invitation(
            email=email.strip().lower(),
            first_name=first_name,
            last_name=last_name,
            company_id=company_id,
            invited_by_id=invited_by_id,
            role=role,
            token=self.token_factory(),
            status=InvitationStatus.PENDING,
            expires_at=self.clock() + timedelta(days=expire_days),
            resend_count=0,
            message=message,
        )

    def is_past_expiry(self, invitation: Invitation) -> bool:
        return self.clock() >= invitation.expires_at

    def refresh(self, invitation: Invitation) -> bool:
        """
        Lazily expire a pending invitation found past its expiry.

        Returns True if the status changed.
        """
        if invitation.status == InvitationStatus.PENDING and self.is_past_expiry(invitation):
            invitation.status = InvitationStatus.EXPIRED
            return True
        return False

    def expire(self, invitation: Invitation) -> Invitation:
        if invitation.status == InvitationStatus.EXPIRED:
            return invitation
        self._transition(invitation, "expire")
        return invitation

    def accept(self, invitation: Invitation) -> Invitation:
        """
        Raises:
            InvitationExpiredException: past expiry (the invitation is left expired)
            InvitationAlreadyResolvedException: not pending
        """
        self.refresh(invitation)
        if invitation.status == InvitationStatus.EXPIRED:
            raise InvitationExpiredException("Invitation has expired")
        self._transition(invitation, "accept")
        invitation.accepted_at = self.clock()
        return invitation

    def revoke(self, invitation: Invitation) -> Invitation:
        self.refresh(invitation)
        self._transition(invitation, "revoke")
        return invitation

    def resend(self, invitation: Invitation, expire_days: int) -> Invitation:
        self.refresh(invitation)
        self._transition(invitation, "resend")
        now = self.clock()
        invitation.token = self.token_factory()
        invitation.expires_at = now + timedelta(days=expire_days)
        invitation.resend_count = (invitation.resend_count or 0) + 1
        invitation.last_resent_at = now
        return invitation

    @staticmethod
    def _transition(invitation: Invitation, event: str) -> None:
        target = TRANSITIONS.get((invitation.status, event))
        if target is None:
            raise InvitationAlreadyResolvedException(
                f"Cannot {event} an invitation that is {invitation.status.value}"
            )
        invitation.status = target
