from datetime import datetime
from pydantic import BaseModel, Field

from wealthmap.models.role import UserRole
from wealthmap.schemas.property_schemas import PropertyFilters


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile"""

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    notify_email: bool | None = None
    notify_in_app: bool | None = None


class ProfileResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: UserRole
    company_id: int
    mfa_enabled: bool
    accepted_terms: bool
    completed_onboarding: bool
    notify_email: bool
    notify_in_app: bool
    last_login_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class BookmarkCreate(BaseModel):
    property_id: int = Field(..., ge=1)


class BookmarkResponse(BaseModel):
    id: int
    property_id: int
    street: str
    city: str
    state: str
    created_at: datetime


class SavedSearchCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    filters: PropertyFilters = Field(default_factory=PropertyFilters)
    query: str | None = Field(None, max_length=255)


class SavedSearchResponse(BaseModel):
    id: int
    name: str
    filters: dict
    created_at: datetime

    model_config = {"from_attributes": True}
