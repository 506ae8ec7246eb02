from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.profile import Profile
from app.models.user_role import UserRole

logger = logging.getLogger(__name__)


@dataclass
class CurrentUser:
    id: str
    email: str | None
    profile: Profile | None = None
    roles: set[str] = field(default_factory=set)
    is_admin: bool = False
    is_super_user: bool = False

    @property
    def effective_roles(self) -> set[str]:
        roles = set(self.roles)
        if self.is_super_user:
            roles.update({"admin", "superuser"})
        elif self.is_admin:
            roles.add("admin")
        return roles

    @property
    def full_name(self) -> str | None:
        return self.profile.full_name if self.profile else None


def configured_super_admin_emails() -> set[str]:
    return {email.strip().lower() for email in settings.SUPER_ADMIN_EMAILS if email.strip()}


def derive_flags(
    email: str | None,
    roles: Iterable[str],
    super_admin_emails: Iterable[str] | None = None,
) -> tuple[bool, bool]:
    """Return ``(is_admin, is_super_user)`` for a user."""

    role_set = set(roles)
    allowed = configured_super_admin_emails() if super_admin_emails is None else {e.lower() for e in super_admin_emails}
    is_super_user = "superuser" in role_set or (email or "").strip().lower() in allowed
    is_admin = is_super_user or "admin" in role_set
    return is_admin, is_super_user


def load_role_names(db: Session, user_id: str) -> set[str]:
    rows = db.query(UserRole.role).filter(UserRole.user_id == user_id).all()
    return {row[0] for row in rows}


def resolve_access(db: Session, user_id: str, email: str | None = None) -> CurrentUser:
    profile = db.get(Profile, user_id)
    if email is None and profile is not None:
        email = profile.email

    try:
        roles = load_role_names(db, user_id)
    except SQLAlchemyError:
        # Without role rows nobody is elevated through roles.
        logger.exception("role lookup failed", extra={"user_id": user_id})
        db.rollback()
        roles = set()

    is_admin, is_super_user = derive_flags(email, roles)
    return CurrentUser(
        id=user_id,
        email=email,
        profile=profile,
        roles=roles,
        is_admin=is_admin,
        is_super_user=is_super_user,
    )
