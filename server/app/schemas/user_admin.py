from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, validator

from app.models.user_role import APP_ROLES


def _check_role(value: str | None) -> str | None:
    if value is not None and value not in APP_ROLES:
        raise ValueError("Invalid role")
    return value


class UserMemberSummary(BaseModel):
    id: str
    full_name: str
    category: str
    church_unit: str | None = None
    is_active: bool

    class Config:
        from_attributes = True


class UserAdminSummary(BaseModel):
    id: str
    email: str | None = None
    full_name: str | None = None
    roles: list[str]
    is_admin: bool
    is_super_user: bool
    has_profile: bool
    created_at: datetime | None = None
    last_sign_in_at: datetime | None = None
    email_confirmed: bool = False
    member: UserMemberSummary | None = None


class UserListResponse(BaseModel):
    items: list[UserAdminSummary]
    total: int
    total_admins: int
    total_super_admins: int
    total_linked: int
    total_unlinked: int


class UserCreateRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=2, max_length=255)
    role: str = "user"

    @validator("role")
    def validate_role(cls, value: str) -> str:
        return _check_role(value)


class UserUpdateRequest(BaseModel):
    full_name: str | None = Field(default=None, min_length=2, max_length=255)
    role: str | None = None

    @validator("role")
    def validate_role(cls, value: str | None) -> str | None:
        return _check_role(value)


class RoleChangeRequest(BaseModel):
    role: str

    @validator("role")
    def validate_role(cls, value: str) -> str:
        return _check_role(value)


class RoleChangeResponse(BaseModel):
    user_id: str
    roles: list[str]
    changed: bool


class SuperAdminAddRequest(BaseModel):
    email: EmailStr


class SuperAdminResultOut(BaseModel):
    success: bool
    message: str
    status: str
    user_id: str | None = None


class SuperAdminOut(BaseModel):
    user_id: str
    email: str | None = None
    full_name: str | None = None
    created_at: datetime | None = None
