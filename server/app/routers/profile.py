from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.auth.deps import get_current_user
from app.core.baas import AuthUser
from app.core.db import get_db
from app.models.member import Member
from app.models.profile import Profile
from app.schemas.member import MemberOut
from app.schemas.profile import ProfileOut, ProfileUpdate, ProfileWithMember
from app.services.access import CurrentUser
from app.services.accounts import ensure_profile
from app.services.members_utils import get_pastor, sync_church_units
from app.services.reconciliation import find_member, sync_specific_user
from app.services.roles import list_roles

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])

# Profile fields copied onto the member record under the same name.
MIRRORED_FIELDS = ("full_name", "phone", "address", "genotype")


def _load_profile(db: Session, user: CurrentUser) -> Profile:
    profile = db.get(Profile, user.id)
    if profile is None:
        if not user.email:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
        profile, _ = ensure_profile(db, AuthUser(id=user.id, email=user.email))
        db.commit()
    return profile


def _response(db: Session, profile: Profile, member: Member | None) -> ProfileWithMember:
    return ProfileWithMember(
        profile=ProfileOut.model_validate(profile),
        member=MemberOut.model_validate(member) if member else None,
        roles=list_roles(db, profile.id),
    )


def mirror_to_member(db: Session, profile: Profile, member: Member, changed: set[str]) -> None:
    for field in MIRRORED_FIELDS:
        if field in changed and getattr(profile, field):
            setattr(member, field, getattr(profile, field))
    if "church_unit" in changed and profile.church_unit:
        member.church_unit = profile.church_unit
        sync_church_units(member)
    if "assigned_pastor" in changed:
        pastor = get_pastor(db, profile.assigned_pastor)
        member.assigned_to_id = pastor.id if pastor else None


@router.get("", response_model=ProfileWithMember)
def read_profile(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> ProfileWithMember:
    profile = _load_profile(db, user)
    return _response(db, profile, find_member(db, profile.email, profile.id))


@router.patch("", response_model=ProfileWithMember)
def update_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> ProfileWithMember:
    profile = _load_profile(db, user)
    updates = payload.model_dump(exclude_unset=True)

    if updates.get("assigned_pastor") and get_pastor(db, updates["assigned_pastor"]) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Assigned pastor not found")

    for field, value in updates.items():
        setattr(profile, field, value)
    db.commit()

    member = find_member(db, profile.email, profile.id)
    if member is None:
        result = sync_specific_user(db, profile.email or "")
        if not result.success:
            logger.warning("member creation from profile failed", extra={"user_id": profile.id, "reason": result.message})
        member = result.member
    else:
        if member.user_id is None:
            member.user_id = profile.id
        mirror_to_member(db, profile, member, set(updates))
        db.commit()

    db.refresh(profile)
    return _response(db, profile, member)
