from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from wealthmap.database import get_db
from wealthmap.dependencies import (
    get_activity_recorder,
    get_company_policy,
    get_current_actor,
    get_policy_evaluator,
)
from wealthmap.models.actor import Actor
from wealthmap.models.company_policy import CompanyPolicy
from wealthmap.models.invitation import Invitation, InvitationStatus
from wealthmap.policy.evaluator import PolicyEvaluator
from wealthmap.schemas.invitation_schemas import (
    InvitationAccept,
    InvitationAcceptResponse,
    InvitationCreate,
    InvitationLinkResponse,
    InvitationListResponse,
    InvitationPreview,
    InvitationResponse,
)
from wealthmap.services.activity_recorder import ActivityRecorder
from wealthmap.services.invitation_service import InvitationService, invitation_url

router = APIRouter()


def _with_link(invitation: Invitation) -> InvitationLinkResponse:
    return InvitationLinkResponse(
        **InvitationResponse.model_validate(invitation).model_dump(),
        token=invitation.token,
        invitation_url=invitation_url(invitation),
    )


@router.post("", response_model=InvitationLinkResponse, status_code=status.HTTP_201_CREATED)
def create_invitation(
    invitation_data: InvitationCreate,
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
    db: Session = Depends(get_db),
):
    """
    Invite a new employee.

    - **Requires ADMIN or MANAGER role** and the invite_users permission
    - Only ADMIN can invite as ADMIN
    - 409 if a pending invitation already exists for the email
    - Expires after the company's invitation_expire_days
    """
    service = InvitationService(db, evaluator, recorder)
    return _with_link(service.create_invitation(invitation_data, actor, policy))


@router.get("", response_model=InvitationListResponse)
def list_invitations(
    status_filter: InvitationStatus | None = Query(None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """
    List the company's invitations, newest first.

    Pending invitations past their expiry are reported (and stored) as expired.
    """
    service = InvitationService(db, evaluator)
    invitations = service.list_invitations(actor, policy, status=status_filter)
    return {"invitations": invitations, "total": len(invitations)}


@router.post("/accept", response_model=InvitationAcceptResponse, status_code=status.HTTP_201_CREATED)
def accept_invitation(
    acceptance: InvitationAccept,
    recorder: ActivityRecorder = Depends(get_activity_recorder),
    db: Session = Depends(get_db),
):
    """
    Accept an invitation and create the account (public).

    - 404 for unknown tokens
    - 409 if the invitation expired, was revoked or was already accepted
    """
    service = InvitationService(db, recorder=recorder)
    user, token = service.accept_invitation(acceptance)
    return {"access_token": token, "user": user}


@router.get("/token/{token}", response_model=InvitationPreview)
def preview_invitation(token: str, db: Session = Depends(get_db)):
    """Invitation details for the acceptance page (public)."""
    service = InvitationService(db)
    return service.preview(token)


@router.post("/{invitation_id}/resend", response_model=InvitationLinkResponse)
def resend_invitation(
    invitation_id: int,
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """
    Issue a new token and expiry for a pending invitation.

    - **Requires ADMIN or MANAGER role**
    - 409 if the invitation is no longer pending
    """
    service = InvitationService(db, evaluator)
    return _with_link(service.resend_invitation(invitation_id, actor, policy))


@router.post("/{invitation_id}/revoke", response_model=InvitationResponse)
def revoke_invitation(
    invitation_id: int,
    actor: Actor = Depends(get_current_actor),
    policy: CompanyPolicy = Depends(get_company_policy),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    db: Session = Depends(get_db),
):
    """
    Revoke a pending invitation.

    - **Requires ADMIN role**
    - 409 if the invitation is no longer pending
    """
    service = InvitationService(db, evaluator)
    return service.revoke_invitation(invitation_id, actor, policy)
