from typing import Optional

from pydantic import BaseModel, EmailStr, Field, validator

from app.services.members_utils import normalize_phone


class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=2, max_length=255)
    phone: Optional[str] = Field(None, max_length=30)
    church_unit: Optional[str] = Field(None, max_length=100)

    @validator("phone")
    def validate_phone(cls, value: Optional[str]) -> Optional[str]:
        return normalize_phone(value)


class SignUpResponse(BaseModel):
    user_id: str
    email: str
    member_synced: bool
    message: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    user_id: str
    email: Optional[str] = None


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordStrengthRequest(BaseModel):
    password: str


class PasswordStrengthResponse(BaseModel):
    is_valid: bool
    strength: str
    message: str
    validations: dict[str, bool]


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class WhoAmIResponse(BaseModel):
    id: str
    user: Optional[str] = None
    full_name: Optional[str] = None
    roles: list[str]
    is_admin: bool = False
    is_super_user: bool = False
    member_id: Optional[str] = None
