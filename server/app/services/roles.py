from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.member import Member
from app.models.profile import Profile
from app.models.user_role import APP_ROLES, UserRole

logger = logging.getLogger(__name__)

SUPERUSER_ROLE = "superuser"

STATUS_SUCCESS = "SUCCESS"
STATUS_ALREADY_SUPERADMIN = "ALREADY_SUPERADMIN"
STATUS_USER_NOT_FOUND = "USER_NOT_FOUND"
STATUS_NOT_SUPERADMIN = "NOT_SUPERADMIN"

# Each role implies the ones below it.
ROLE_GRANTS = {
    "user": ("user",),
    "admin": ("user", "admin"),
    "superuser": ("user", "admin", "superuser"),
}


@dataclass
class SuperAdminResult:
    success: bool
    message: str
    status: str
    user_id: str | None = None

    def as_dict(self) -> dict:
        return asdict(self)


def _check_role(role: str) -> None:
    if role not in APP_ROLES:
        raise ValueError(f"Invalid role: {role}")


def list_roles(db: Session, user_id: str) -> list[str]:
    rows = db.query(UserRole.role).filter(UserRole.user_id == user_id).order_by(UserRole.role).all()
    return [row[0] for row in rows]


def add_role(db: Session, user_id: str, role: str) -> bool:
    """Grant ``role``; returns False when the user already holds it."""

    _check_role(role)
    existing = db.query(UserRole).filter(UserRole.user_id == user_id, UserRole.role == role).first()
    if existing is not None:
        return False
    db.add(UserRole(user_id=user_id, role=role))
    db.flush()
    logger.info("role granted", extra={"user_id": user_id, "role": role})
    return True


def remove_role(db: Session, user_id: str, role: str) -> bool:
    _check_role(role)
    deleted = (
        db.query(UserRole)
        .filter(UserRole.user_id == user_id, UserRole.role == role)
        .delete(synchronize_session="fetch")
    )
    if deleted:
        logger.info("role revoked", extra={"user_id": user_id, "role": role})
    return bool(deleted)


def set_primary_role(db: Session, profile: Profile, role: str) -> None:
    """Replace the user's role rows with those implied by ``role`` and record it on profile and member."""

    _check_role(role)
    granted = set(ROLE_GRANTS[role])
    for existing in list_roles(db, profile.id):
        if existing not in granted:
            remove_role(db, profile.id, existing)
    for name in ROLE_GRANTS[role]:
        add_role(db, profile.id, name)
    profile.role = role
    if profile.member is not None:
        profile.member.role = role


def list_super_admins(db: Session) -> list[dict]:
    rows = (
        db.query(Profile)
        .join(UserRole, UserRole.user_id == Profile.id)
        .filter(UserRole.role == SUPERUSER_ROLE)
        .order_by(Profile.email.asc())
        .all()
    )
    return [
        {
            "user_id": profile.id,
            "email": profile.email,
            "full_name": profile.full_name,
            "created_at": profile.created_at,
        }
        for profile in rows
    ]


def add_super_admin_by_email(db: Session, email: str) -> SuperAdminResult:
    profile = db.query(Profile).filter(func.lower(Profile.email) == email.strip().lower()).first()
    if profile is None:
        return SuperAdminResult(False, f"No user found with email {email}", STATUS_USER_NOT_FOUND)

    if not add_role(db, profile.id, SUPERUSER_ROLE):
        return SuperAdminResult(True, f"{email} is already a super admin", STATUS_ALREADY_SUPERADMIN, profile.id)

    for implied in ROLE_GRANTS[SUPERUSER_ROLE]:
        add_role(db, profile.id, implied)
    profile.role = SUPERUSER_ROLE
    member = profile.member or db.query(Member).filter(func.lower(Member.email) == profile.email.lower()).first()
    if member is not None:
        member.role = SUPERUSER_ROLE
    db.commit()
    return SuperAdminResult(True, f"{email} is now a super admin", STATUS_SUCCESS, profile.id)


def remove_super_admin(db: Session, user_id: str) -> SuperAdminResult:
    profile = db.get(Profile, user_id)
    if profile is None:
        return SuperAdminResult(False, "User not found", STATUS_USER_NOT_FOUND)
    if not remove_role(db, user_id, SUPERUSER_ROLE):
        return SuperAdminResult(False, f"{profile.email} is not a super admin", STATUS_NOT_SUPERADMIN, user_id)

    fallback = "admin" if "admin" in list_roles(db, user_id) else "user"
    profile.role = fallback
    if profile.member is not None:
        profile.member.role = fallback
    db.commit()
    return SuperAdminResult(True, f"Removed super admin rights from {profile.email}", STATUS_SUCCESS, user_id)
