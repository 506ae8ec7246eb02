from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field

from app.schemas.member import MemberOut


class SyncEmailRequest(BaseModel):
    email: EmailStr


class SyncResultOut(BaseModel):
    success: bool
    message: str
    existing: bool = False
    member: MemberOut | None = None


class SyncErrorOut(BaseModel):
    email: str
    error: str


class ValidationFailureOut(BaseModel):
    email: str
    errors: list[str]


class BulkSyncOut(BaseModel):
    success: bool
    message: str
    added: int = 0
    errors: list[SyncErrorOut] = Field(default_factory=list)
    validation_errors: list[ValidationFailureOut] = Field(default_factory=list)
    refresh_needed: bool = False


class MemberConflictOut(BaseModel):
    member_id: str
    email: str | None = None
    conflicts: list[str]


class ConsolidationOut(BaseModel):
    updated: int
    conflicts: list[MemberConflictOut]


class ReconcileOut(BaseModel):
    success: bool
    profiles_created: int
    members_linked: int
    sync: BulkSyncOut | None = None
    consolidation: ConsolidationOut | None = None
    errors: list[str] = []


class SyncStatusOut(BaseModel):
    profiles: int
    members: int
    members_with_user_id: int
    members_without_user_id: int
    profiles_without_member: int
