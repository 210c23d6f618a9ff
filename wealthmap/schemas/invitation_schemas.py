from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

from wealthmap.models.invitation import InvitationStatus
from wealthmap.models.role import UserRole
from wealthmap.schemas.auth_schemas import UserResponse


class InvitationCreate(BaseModel):
    """Invite a new employee (ADMIN or MANAGER)"""

    email: EmailStr
    role: UserRole = Field(default=UserRole.VIEWER, description="Role to assign (default: VIEWER)")
    first_name: str = Field("", max_length=100)
    last_name: str = Field("", max_length=100)
    message: str | None = Field(None, max_length=2000)


class InvitationResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    company_id: int
    invited_by_id: int
    role: UserRole
    status: InvitationStatus
    expires_at: datetime
    accepted_at: datetime | None = None
    resend_count: int
    last_resent_at: datetime | None = None
    message: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class InvitationLinkResponse(InvitationResponse):
    """
    Returned to the inviter on create/resend.

    Carries the acceptance link, since invitation emails are delivered outside
    this service.
    """

    token: str
    invitation_url: str


class InvitationListResponse(BaseModel):
    invitations: list[InvitationResponse]
    total: int


class InvitationPreview(BaseModel):
    """Public view of an invitation, looked up by token"""

    email: str
    first_name: str
    last_name: str
    role: UserRole
    status: InvitationStatus
    expires_at: datetime
    company_name: str
    invited_by_name: str
    message: str | None = None


class InvitationAccept(BaseModel):
    token: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)


class InvitationAcceptResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
