from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from wealthmap.models.property import PropertyType
from wealthmap.models.role import UserRole
from wealthmap.policy.permissions import Permission


class CompanyResponse(BaseModel):
    """Company profile"""

    id: int
    name: str
    slug: str
    is_active: bool
    logo: str | None = None
    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    country: str | None = None
    phone: str | None = None
    website: str | None = None
    industry: str | None = None
    description: str | None = None
    admin_user_id: int | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CompanyUpdate(BaseModel):
    """Update company profile (ADMIN only). Omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=1, max_length=255)
    logo: str | None = Field(None, max_length=512)
    street: str | None = Field(None, max_length=255)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=50)
    zip_code: str | None = Field(None, max_length=20)
    country: str | None = Field(None, max_length=100)
    phone: str | None = Field(None, max_length=50)
    website: str | None = Field(None, max_length=255)
    industry: str | None = Field(None, max_length=100)
    description: str | None = None


class GeographicRestrictions(BaseModel):
    states: list[str] = Field(default_factory=list)
    countries: list[str] = Field(default_factory=list)
    zip_codes: list[str] = Field(default_factory=list)


class DataAccessSettings(BaseModel):
    """Company data-access policy"""

    allowed_property_types: list[PropertyType]
    wealth_data_access: bool
    ownership_history_access: bool
    export_enabled: bool
    max_exports_per_month: int
    min_value_threshold: float | None = None
    max_value_threshold: float | None = None
    geographic_restrictions: GeographicRestrictions | None = None
    invitation_expire_days: int
    require_mfa: bool

    model_config = {"from_attributes": True}


class DataAccessUpdate(BaseModel):
    """Partial update of the data-access policy (ADMIN only)"""

    allowed_property_types: list[PropertyType] | None = None
    wealth_data_access: bool | None = None
    ownership_history_access: bool | None = None
    export_enabled: bool | None = None
    max_exports_per_month: int | None = Field(None, ge=0, le=100000)
    min_value_threshold: float | None = Field(None, ge=0)
    max_value_threshold: float | None = Field(None, ge=0)
    geographic_restrictions: GeographicRestrictions | None = None
    invitation_expire_days: int | None = Field(None, ge=1, le=90)
    require_mfa: bool | None = None


class EmployeeResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: UserRole
    is_active: bool
    mfa_enabled: bool
    permission_overrides: dict[str, bool]
    last_login_at: datetime | None = None
    last_active_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class EmployeeUpdate(BaseModel):
    """Change an employee's role, status or permission overrides (ADMIN only)"""

    role: UserRole | None = None
    is_active: bool | None = None
    permission_overrides: dict[str, bool] | None = None

    @field_validator("permission_overrides")
    @classmethod
    def known_permissions(cls, value: dict[str, bool] | None) -> dict[str, bool] | None:
        if value is None:
            return value
        unknown = sorted(set(value) - {p.value for p in Permission})
        if unknown:
            raise ValueError(f"Unknown permissions: {', '.join(unknown)}")
        return value


class UsageStats(BaseModel):
    total_users: int
    active_users: int
    users_active_last_30_days: int
    pending_invitations: int
    exports_this_month: int
    max_exports_per_month: int
    visible_properties_by_type: dict[str, int]


class ActivityEntry(BaseModel):
    id: int
    user_id: int
    action: str
    details: dict
    ip_address: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ActivityListResponse(BaseModel):
    activities: list[ActivityEntry]
    total: int
