from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.core.baas import AuthUser
from app.models.profile import Profile

SPECIAL_CHARACTERS = set("!@#$%^&*()_+-=[]{};':\"\\|,.<>/?")
MIN_PASSWORD_LENGTH = 8


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PasswordCheck:
    is_valid: bool
    strength: str
    message: str
    validations: dict[str, bool] = field(default_factory=dict)


def evaluate_password(password: str) -> PasswordCheck:
    validations = {
        "has_min_length": len(password) >= MIN_PASSWORD_LENGTH,
        "has_uppercase": bool(re.search(r"[A-Z]", password)),
        "has_lowercase": bool(re.search(r"[a-z]", password)),
        "has_number": bool(re.search(r"[0-9]", password)),
        "has_special_char": any(char in SPECIAL_CHARACTERS for char in password),
    }
    met = sum(validations.values())
    if met <= 2:
        return PasswordCheck(False, "weak", "Password is too weak. Please use a stronger password.", validations)
    if met == 3:
        return PasswordCheck(True, "medium", "Password strength is medium. Consider adding more variety.", validations)
    if met == 4:
        return PasswordCheck(True, "strong", "Password strength is strong.", validations)
    return PasswordCheck(True, "very-strong", "Password strength is very strong.", validations)


def validate_password_strength(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")
    check = evaluate_password(password)
    if not check.is_valid:
        raise ValueError(check.message)


def ensure_profile(
    db: Session,
    auth_user: AuthUser,
    *,
    full_name: str | None = None,
    role: str = "user",
) -> tuple[Profile, bool]:
    """Create the profile row for an auth user or refresh its email. Returns (profile, created)."""

    profile = db.get(Profile, auth_user.id)
    email = auth_user.email.lower() if auth_user.email else None
    if profile is None:
        profile = Profile(
            id=auth_user.id,
            email=email,
            full_name=full_name or auth_user.full_name or email,
            role=role,
        )
        created_at = auth_user.created_at
        if created_at is not None:
            if created_at.tzinfo is not None:
                created_at = created_at.astimezone(timezone.utc).replace(tzinfo=None)
            profile.created_at = created_at
        db.add(profile)
        db.flush()
        return profile, True

    if email and profile.email != email:
        profile.email = email
    if full_name and not profile.full_name:
        profile.full_name = full_name
    return profile, False
