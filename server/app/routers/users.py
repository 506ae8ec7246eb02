from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from app.auth.deps import require_super_admin
from app.core.baas import AuthGateway, AuthUser, get_auth_gateway
from app.core.config import settings
from app.core.db import get_db
from app.models.member import Member
from app.models.profile import Profile
from app.schemas.auth import MessageResponse
from app.schemas.user_admin import (
    RoleChangeRequest,
    RoleChangeResponse,
    UserAdminSummary,
    UserCreateRequest,
    UserListResponse,
    UserMemberSummary,
    UserUpdateRequest,
)
from app.services.access import CurrentUser, derive_flags
from app.services.accounts import ensure_profile, validate_password_strength
from app.services.reconciliation import sync_specific_user
from app.services.roles import ROLE_GRANTS, add_role, list_roles, remove_role, set_primary_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _serialize_user(auth_user: AuthUser | None, profile: Profile | None, member: Member | None) -> UserAdminSummary:
    email = (auth_user.email if auth_user else None) or (profile.email if profile else None)
    roles = sorted(profile.role_names) if profile else []
    is_admin, is_super_user = derive_flags(email, roles)
    return UserAdminSummary(
        id=auth_user.id if auth_user else profile.id,
        email=email,
        full_name=(profile.full_name if profile else None) or (auth_user.full_name if auth_user else None),
        roles=roles,
        is_admin=is_admin,
        is_super_user=is_super_user,
        has_profile=profile is not None,
        created_at=(auth_user.created_at if auth_user else None) or (profile.created_at if profile else None),
        last_sign_in_at=auth_user.last_sign_in_at if auth_user else None,
        email_confirmed=bool(auth_user and auth_user.confirmed_at),
        member=UserMemberSummary.model_validate(member) if member else None,
    )


def _members_by_user(db: Session) -> dict[str, Member]:
    return {member.user_id: member for member in db.query(Member).filter(Member.user_id.isnot(None)).all()}


def _get_profile_or_404(db: Session, user_id: str) -> Profile:
    profile = db.get(Profile, user_id)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return profile


@router.get("", response_model=UserListResponse)
def list_users(
    search: str | None = Query(default=None, description="Search email or name"),
    role: str | None = Query(default=None),
    linked: bool | None = Query(default=None, description="Filter by member link status"),
    db: Session = Depends(get_db),
    gateway: AuthGateway = Depends(get_auth_gateway),
    _: CurrentUser = Depends(require_super_admin),
) -> UserListResponse:
    profiles = {profile.id: profile for profile in db.query(Profile).all()}
    members = _members_by_user(db)

    items = [
        _serialize_user(auth_user, profiles.get(auth_user.id), members.get(auth_user.id))
        for auth_user in gateway.list_users()
    ]

    if search:
        needle = search.lower()
        items = [
            item
            for item in items
            if needle in (item.email or "").lower() or needle in (item.full_name or "").lower()
        ]
    if role:
        items = [item for item in items if role in item.roles]
    if linked is not None:
        items = [item for item in items if (item.member is not None) == linked]

    items.sort(key=lambda item: (item.email or "").lower())
    total_linked = sum(1 for item in items if item.member is not None)
    return UserListResponse(
        items=items,
        total=len(items),
        total_admins=sum(1 for item in items if item.is_admin),
        total_super_admins=sum(1 for item in items if item.is_super_user),
        total_linked=total_linked,
        total_unlinked=len(items) - total_linked,
    )


@router.post("", response_model=UserAdminSummary, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreateRequest,
    db: Session = Depends(get_db),
    gateway: AuthGateway = Depends(get_auth_gateway),
    current_user: CurrentUser = Depends(require_super_admin),
) -> UserAdminSummary:
    try:
        validate_password_strength(payload.password)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    email = payload.email.lower()
    if db.query(Profile).filter(Profile.email == email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A user with this email already exists")

    auth_user = gateway.create_user(email, payload.password, full_name=payload.full_name)
    profile, _ = ensure_profile(db, auth_user, full_name=payload.full_name, role=payload.role)
    for role in ROLE_GRANTS[payload.role]:
        add_role(db, profile.id, role)
    db.commit()

    result = sync_specific_user(db, email)
    member = result.member
    if member is not None and member.role != payload.role:
        member.role = payload.role
        db.commit()
    db.refresh(profile)

    logger.info("user created", extra={"actor": current_user.email, "user": profile.id, "role": payload.role})
    return _serialize_user(auth_user, profile, member)


@router.patch("/{user_id}", response_model=UserAdminSummary)
def update_user(
    user_id: str,
    payload: UserUpdateRequest,
    db: Session = Depends(get_db),
    gateway: AuthGateway = Depends(get_auth_gateway),
    current_user: CurrentUser = Depends(require_super_admin),
) -> UserAdminSummary:
    profile = _get_profile_or_404(db, user_id)
    updates = payload.model_dump(exclude_unset=True)

    if updates.get("role") and user_id == current_user.id and updates["role"] != "superuser":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot remove your own super admin rights")

    if updates.get("full_name"):
        profile.full_name = updates["full_name"]
        if profile.member is not None:
            profile.member.full_name = updates["full_name"]
    if updates.get("role"):
        set_primary_role(db, profile, updates["role"])

    db.commit()
    if updates.get("full_name"):
        gateway.update_user(user_id, metadata={"full_name": updates["full_name"]})
    db.refresh(profile)
    return _serialize_user(None, profile, profile.member)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    gateway: AuthGateway = Depends(get_auth_gateway),
    current_user: CurrentUser = Depends(require_super_admin),
) -> Response:
    if user_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account")

    gateway.delete_user(user_id)

    # The member record outlives the account.
    db.query(Member).filter(Member.user_id == user_id).update({Member.user_id: None}, synchronize_session="fetch")
    profile = db.get(Profile, user_id)
    if profile is not None:
        db.delete(profile)
    db.commit()

    logger.info("user deleted", extra={"actor": current_user.email, "user": user_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{user_id}/roles", response_model=RoleChangeResponse)
def grant_role(
    user_id: str,
    payload: RoleChangeRequest,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_super_admin),
) -> RoleChangeResponse:
    _get_profile_or_404(db, user_id)
    changed = add_role(db, user_id, payload.role)
    db.commit()
    return RoleChangeResponse(user_id=user_id, roles=list_roles(db, user_id), changed=changed)


@router.delete("/{user_id}/roles/{role}", response_model=RoleChangeResponse)
def revoke_role(
    user_id: str,
    role: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_super_admin),
) -> RoleChangeResponse:
    _get_profile_or_404(db, user_id)
    if user_id == current_user.id and role == "superuser":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot remove your own super admin rights")
    try:
        changed = remove_role(db, user_id, role)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    db.commit()
    return RoleChangeResponse(user_id=user_id, roles=list_roles(db, user_id), changed=changed)


@router.post("/{user_id}/password-reset", response_model=MessageResponse)
def send_password_reset(
    user_id: str,
    db: Session = Depends(get_db),
    gateway: AuthGateway = Depends(get_auth_gateway),
    _: CurrentUser = Depends(require_super_admin),
) -> MessageResponse:
    profile = _get_profile_or_404(db, user_id)
    if not profile.email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User has no email address")
    gateway.send_password_reset(profile.email, settings.PASSWORD_RESET_REDIRECT_URL)
    return MessageResponse(message=f"Password reset email sent to {profile.email}")
