from pydantic import BaseModel, Field


class MfaSetupResponse(BaseModel):
    """Secret and otpauth:// URI to load into an authenticator app"""

    secret: str
    provisioning_uri: str


class MfaCode(BaseModel):
    code: str = Field(..., min_length=6, max_length=6, pattern=r"^\d{6}$")


class MfaEnableResponse(BaseModel):
    enabled: bool
    access_token: str
    token_type: str = "bearer"


class MfaStatusResponse(BaseModel):
    enabled: bool
    required_by_company: bool
    session_verified: bool
