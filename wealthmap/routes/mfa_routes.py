from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from wealthmap.database import get_db
from wealthmap.dependencies import (
    get_activity_recorder,
    get_company_policy,
    get_current_actor,
    get_current_user,
)
from wealthmap.models.actor import Actor
from wealthmap.models.company_policy import CompanyPolicy
from wealthmap.models.user import User
from wealthmap.schemas.mfa_schemas import (
    MfaCode,
    MfaEnableResponse,
    MfaSetupResponse,
    MfaStatusResponse,
)
from wealthmap.services.activity_recorder import ActivityRecorder
from wealthmap.services.mfa_service import MfaService

router = APIRouter()


@router.get("/status", response_model=MfaStatusResponse)
def mfa_status(
    actor: Actor = Depends(get_current_actor),
    user: User = Depends(get_current_user),
    policy: CompanyPolicy = Depends(get_company_policy),
):
    return {
        "enabled": user.mfa_enabled,
        "required_by_company": policy.require_mfa,
        "session_verified": actor.mfa_verified,
    }


@router.post("/setup", response_model=MfaSetupResponse)
def setup_mfa(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Generate a TOTP secret. MFA stays off until /enable verifies a code."""
    service = MfaService(db)
    secret, uri = service.setup(user)
    return {"secret": secret, "provisioning_uri": uri}


@router.post("/enable", response_model=MfaEnableResponse)
def enable_mfa(
    mfa_code: MfaCode,
    user: User = Depends(get_current_user),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
    db: Session = Depends(get_db),
):
    """Verify a first code and turn MFA on. Returns an MFA-verified token."""
    service = MfaService(db, recorder)
    token = service.enable(user, mfa_code.code)
    return {"enabled": True, "access_token": token}


@router.post("/disable", status_code=status.HTTP_204_NO_CONTENT)
def disable_mfa(
    mfa_code: MfaCode,
    user: User = Depends(get_current_user),
    policy: CompanyPolicy = Depends(get_company_policy),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
    db: Session = Depends(get_db),
):
    """Turn MFA off. Forbidden while the company requires MFA."""
    service = MfaService(db, recorder)
    service.disable(user, mfa_code.code, policy)
