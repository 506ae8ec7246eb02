from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, validator

from app.schemas.member import MemberOut
from app.services.church_units import normalize_church_units
from app.services.members_utils import normalize_phone


class ProfileOut(BaseModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    genotype: Optional[str] = None
    address: Optional[str] = None
    church_unit: Optional[str] = None
    assigned_pastor: Optional[str] = None
    date_of_birth: Optional[date] = None
    role: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProfileWithMember(BaseModel):
    profile: ProfileOut
    member: Optional[MemberOut] = None
    roles: list[str]


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=2, max_length=255)
    phone: Optional[str] = Field(None, max_length=30)
    genotype: Optional[str] = Field(None, max_length=10)
    address: Optional[str] = Field(None, max_length=255)
    church_unit: Optional[str] = Field(None, max_length=100)
    assigned_pastor: Optional[str] = None
    date_of_birth: Optional[date] = None

    @validator("phone")
    def validate_phone(cls, value: Optional[str]) -> Optional[str]:
        return normalize_phone(value)

    @validator("church_unit")
    def validate_church_unit(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        units = normalize_church_units([value])
        if not units:
            raise ValueError(f"Unknown church unit: {value}")
        return units[0]

    @validator("date_of_birth")
    def validate_birth_date(cls, value: Optional[date]) -> Optional[date]:
        if value and value > date.today():
            raise ValueError("Date of birth cannot be in the future")
        return value
