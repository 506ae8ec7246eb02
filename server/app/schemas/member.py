from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import BaseModel, EmailStr, Field, model_validator, validator

from app.models.member import MEMBER_CATEGORIES
from app.models.user_role import APP_ROLES
from app.services.church_units import normalize_church_units
from app.services.members_utils import normalize_member_record, normalize_phone


def _fold_legacy_keys(data: Any) -> Any:
    if isinstance(data, dict):
        return normalize_member_record(data)
    return data


class MemberFields(BaseModel):
    """Writable member fields shared by create and update payloads."""

    @model_validator(mode="before")
    @classmethod
    def fold_legacy_keys(cls, data: Any) -> Any:
        return _fold_legacy_keys(data)

    @validator("phone", check_fields=False)
    def validate_phone(cls, value: Optional[str]) -> Optional[str]:
        return normalize_phone(value)

    @validator("category", check_fields=False)
    def validate_category(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in MEMBER_CATEGORIES:
            raise ValueError("Invalid member category")
        return value

    @validator("role", check_fields=False)
    def validate_role(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in APP_ROLES:
            raise ValueError("Invalid user role")
        return value

    @validator("church_unit", check_fields=False)
    def validate_church_unit(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        units = normalize_church_units([value])
        if not units:
            raise ValueError(f"Unknown church unit: {value}")
        return units[0]

    @validator("church_units", check_fields=False)
    def validate_church_units(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return None
        unknown = [unit for unit in value if unit and not normalize_church_units([unit])]
        if unknown:
            raise ValueError(f"Unknown church units: {', '.join(unknown)}")
        return normalize_church_units(value)

    @validator("join_date", check_fields=False)
    def validate_join_date(cls, value: Optional[date]) -> Optional[date]:
        if value and value > date.today():
            raise ValueError("Join date cannot be in the future")
        return value


class MemberCreate(MemberFields):
    full_name: str = Field(..., min_length=2, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=255)
    genotype: Optional[str] = Field(None, max_length=10)
    category: str = "Members"
    title: Optional[str] = Field(None, max_length=100)
    assigned_to_id: Optional[str] = None
    church_unit: Optional[str] = None
    church_units: List[str] = Field(default_factory=list)
    auxano_group: Optional[str] = Field(None, max_length=100)
    join_date: Optional[date] = None
    notes: Optional[str] = None
    is_active: bool = True
    role: str = "user"
    user_id: Optional[str] = None


class MemberUpdate(MemberFields):
    full_name: Optional[str] = Field(None, min_length=2, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=255)
    genotype: Optional[str] = Field(None, max_length=10)
    category: Optional[str] = None
    title: Optional[str] = Field(None, max_length=100)
    assigned_to_id: Optional[str] = None
    church_unit: Optional[str] = None
    church_units: Optional[List[str]] = None
    auxano_group: Optional[str] = Field(None, max_length=100)
    join_date: Optional[date] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None
    role: Optional[str] = None


class PastorSummary(BaseModel):
    id: str
    full_name: str
    title: Optional[str] = None

    class Config:
        from_attributes = True


class MemberOut(BaseModel):
    id: str
    user_id: Optional[str] = None
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    genotype: Optional[str] = None
    category: str
    title: Optional[str] = None
    assigned_to_id: Optional[str] = None
    church_unit: Optional[str] = None
    church_units: List[str] = Field(default_factory=list)
    auxano_group: Optional[str] = None
    join_date: Optional[date] = None
    notes: Optional[str] = None
    is_active: bool
    role: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MemberDetailOut(MemberOut):
    assigned_pastor: Optional[PastorSummary] = None


class MemberListResponse(BaseModel):
    items: List[MemberOut]
    total: int
    page: int
    page_size: int


class PastorCreate(MemberFields):
    full_name: str = Field(..., min_length=2, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    title: Optional[str] = Field("Pastor", max_length=100)
    church_unit: Optional[str] = None
    church_units: List[str] = Field(default_factory=list)
    address: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    is_active: bool = True


class PastorUpdate(MemberFields):
    full_name: Optional[str] = Field(None, min_length=2, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    title: Optional[str] = Field(None, max_length=100)
    church_unit: Optional[str] = None
    church_units: Optional[List[str]] = None
    address: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class PastorOut(MemberOut):
    assigned_count: int = 0


class AssignMembersRequest(BaseModel):
    member_ids: List[str] = Field(..., min_length=1)


class AssignMembersResponse(BaseModel):
    pastor_id: str
    updated: int
    missing: List[str] = Field(default_factory=list)


class ChurchUnitOut(BaseModel):
    id: str
    name: str
    description: str
