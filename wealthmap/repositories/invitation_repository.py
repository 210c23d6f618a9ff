"""Repository for Invitation model operations."""

from sqlalchemy.orm import Session
from wealthmap.models.invitation import Invitation, InvitationStatus


class InvitationRepository:
    """Repository for Invitation model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, invitation_id: int) -> Invitation | None:
        """Unscoped lookup; callers must authorize against invitation.company_id"""
        return self.db.query(Invitation).filter(Invitation.id == invitation_id).first()

    def get_by_token(self, token: str) -> Invitation | None:
        return self.db.query(Invitation).filter(Invitation.token == token).first()

    def get_pending(self, email: str, company_id: int) -> Invitation | None:
        return (
            self.db.query(Invitation)
            .filter(
                Invitation.email == email,
                Invitation.company_id == company_id,
                Invitation.status == InvitationStatus.PENDING,
            )
            .first()
        )

    def get_company_invitations(
        self, company_id: int, status: InvitationStatus | None = None
    ) -> list[Invitation]:
        query = self.db.query(Invitation).filter(Invitation.company_id == company_id)
        if status is not None:
            query = query.filter(Invitation.status == status)
        return query.order_by(Invitation.created_at.desc(), Invitation.id.desc()).all()

    def create(self, invitation: Invitation) -> Invitation:
        """
        Create a new invitation.

        Raises:
            IntegrityError: If a pending invitation already exists for
                (email, company_id) or the token collides
        """
        self.db.add(invitation)
        self.db.commit()
        self.db.refresh(invitation)
        return invitation

    def update(self, invitation: Invitation) -> Invitation:
        self.db.commit()
        self.db.refresh(invitation)
        return invitation
