from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

from wealthmap.models.role import UserRole


class CompanyRegistration(BaseModel):
    """Register a company together with its first admin"""

    company_name: str = Field(..., min_length=1, max_length=255)
    industry: str | None = Field(None, max_length=100)
    phone: str | None = Field(None, max_length=50)
    website: str | None = Field(None, max_length=255)
    street: str | None = Field(None, max_length=255)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=50)
    zip_code: str | None = Field(None, max_length=20)
    country: str | None = Field(None, max_length=100)

    admin_email: EmailStr
    admin_password: str = Field(..., min_length=8, max_length=128)
    admin_first_name: str = Field(..., min_length=1, max_length=100)
    admin_last_name: str = Field(..., min_length=1, max_length=100)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    mfa_code: str | None = Field(None, description="6-digit TOTP code, required when MFA is enabled")


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)


class UserResponse(BaseModel):
    """User details (never includes password hash or MFA secret)"""

    id: int
    email: str
    first_name: str
    last_name: str
    role: UserRole
    company_id: int
    is_active: bool
    mfa_enabled: bool
    accepted_terms: bool
    completed_onboarding: bool
    last_login_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class CompanySummary(BaseModel):
    id: int
    name: str
    slug: str

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class RegistrationResponse(TokenResponse):
    company: CompanySummary


class MeResponse(BaseModel):
    """Authenticated user with the effective permissions of this session"""

    user: UserResponse
    company: CompanySummary
    permissions: list[str]
    mfa_verified: bool
