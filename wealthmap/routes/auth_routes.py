from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from wealthmap.database import get_db
from wealthmap.dependencies import get_activity_recorder, get_current_actor, get_current_user
from wealthmap.models.actor import Actor
from wealthmap.models.user import User
from wealthmap.schemas.auth_schemas import (
    CompanyRegistration,
    LoginRequest,
    MeResponse,
    PasswordChange,
    RegistrationResponse,
    TokenResponse,
)
from wealthmap.services.activity_recorder import ActivityRecorder
from wealthmap.services.auth_service import AuthService

router = APIRouter()


@router.post(
    "/register-company",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
)
def register_company(
    registration: CompanyRegistration,
    db: Session = Depends(get_db),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
):
    """
    Register a new company and its first admin.

    - The admin is logged in immediately (token in response)
    - Company slug is derived from the name and made unique
    """
    service = AuthService(db, recorder)
    company, admin, token = service.register_company(registration)
    return {"access_token": token, "user": admin, "company": company}


@router.post("/login", response_model=TokenResponse)
def login(
    credentials: LoginRequest,
    db: Session = Depends(get_db),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
):
    """
    Exchange email/password for an access token.

    - **mfa_code** is required when the user has MFA enabled
    """
    service = AuthService(db, recorder)
    user, token = service.login(credentials)
    return {"access_token": token, "user": user}


@router.get("/me", response_model=MeResponse)
def get_me(
    actor: Actor = Depends(get_current_actor),
    user: User = Depends(get_current_user),
):
    """Current user, company and effective permissions for this session."""
    return {
        "user": user,
        "company": user.company,
        "permissions": sorted(p.value for p in actor.permissions),
        "mfa_verified": actor.mfa_verified,
    }


@router.put("/password", response_model=TokenResponse)
def change_password(
    password_change: PasswordChange,
    actor: Actor = Depends(get_current_actor),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
):
    """
    Change the current user's password.

    Tokens issued before the change are rejected afterwards; use the token
    returned here.
    """
    service = AuthService(db, recorder)
    token = service.change_password(user, actor, password_change)
    return {"access_token": token, "user": user}
