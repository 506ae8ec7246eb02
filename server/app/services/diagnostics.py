"""Read-only health checks used by the CLI scripts."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from jose import JWTError
from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.auth.security import read_unverified_claims
from app.core.baas import project_ref_from_url
from app.core.config import Settings
from app.models.content import Announcement, Event, Sermon
from app.models.member import Member
from app.models.profile import Profile
from app.models.user_role import UserRole
from app.services.access import configured_super_admin_emails

logger = logging.getLogger(__name__)

COUNTED_TABLES = {
    "profiles": Profile,
    "members": Member,
    "user_roles": UserRole,
    "events": Event,
    "sermons": Sermon,
    "announcements": Announcement,
}


@dataclass
class EnvReport:
    present: dict[str, bool] = field(default_factory=dict)
    claims: dict[str, dict[str, Any]] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _key_role(name: str, token: str, report: EnvReport) -> str | None:
    try:
        claims = read_unverified_claims(token)
    except JWTError:
        report.errors.append(f"{name} is not a valid JWT")
        return None
    report.claims[name] = claims
    return claims.get("role")


def check_environment(config: Settings) -> EnvReport:
    report = EnvReport()
    values = {
        "SUPABASE_URL": config.SUPABASE_URL,
        "SUPABASE_ANON_KEY": config.SUPABASE_ANON_KEY,
        "SUPABASE_SERVICE_ROLE_KEY": config.SUPABASE_SERVICE_ROLE_KEY,
        "SUPABASE_ACCESS_TOKEN": config.SUPABASE_ACCESS_TOKEN,
        "DATABASE_URL": config.DATABASE_URL,
    }
    for name, value in values.items():
        report.present[name] = bool(value)

    if not config.SUPABASE_URL:
        report.errors.append("SUPABASE_URL is missing")
    elif not (config.SUPABASE_URL.startswith("https://") or config.SUPABASE_URL.startswith("http://localhost")):
        report.warnings.append("SUPABASE_URL does not use https")

    anon, service = config.SUPABASE_ANON_KEY, config.SUPABASE_SERVICE_ROLE_KEY
    if not anon:
        report.errors.append("SUPABASE_ANON_KEY is missing")
    elif (role := _key_role("SUPABASE_ANON_KEY", anon, report)) is not None and role != "anon":
        report.errors.append(f"SUPABASE_ANON_KEY has role '{role}', expected 'anon'")

    if not service:
        report.warnings.append("SUPABASE_SERVICE_ROLE_KEY is missing; admin operations will fail")
    elif (role := _key_role("SUPABASE_SERVICE_ROLE_KEY", service, report)) is not None and role != "service_role":
        report.errors.append(f"SUPABASE_SERVICE_ROLE_KEY has role '{role}', expected 'service_role'")

    if anon and service and anon == service:
        report.errors.append("SUPABASE_ANON_KEY and SUPABASE_SERVICE_ROLE_KEY are identical")

    if not config.SUPABASE_ACCESS_TOKEN:
        report.warnings.append("SUPABASE_ACCESS_TOKEN is missing; SQL execution through the management API is unavailable")
    elif not (config.SUPABASE_PROJECT_REF or project_ref_from_url(config.SUPABASE_URL or "")):
        report.warnings.append("SUPABASE_PROJECT_REF is not set and cannot be derived from SUPABASE_URL")

    if config.SUPABASE_JWT_SECRET == "change-me":
        report.warnings.append("SUPABASE_JWT_SECRET still has its placeholder value")
    return report


def table_counts(db: Session) -> dict[str, int | None]:
    counts: dict[str, int | None] = {}
    for name, model in COUNTED_TABLES.items():
        try:
            counts[name] = db.query(func.count(model.id)).scalar() or 0
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("count failed", extra={"table": name, "error": str(exc)})
            counts[name] = None
    return counts


def rls_policies(db: Session) -> list[dict[str, Any]]:
    """Row-level security policies on the app tables; empty on databases without them."""

    if db.get_bind().dialect.name != "postgresql":
        return []
    rows = db.execute(
        text(
            "SELECT tablename, policyname, cmd, roles::text AS roles "
            "FROM pg_policies WHERE schemaname = 'public' AND tablename = ANY(:tables) "
            "ORDER BY tablename, policyname"
        ),
        {"tables": list(COUNTED_TABLES)},
    )
    return [dict(row._mapping) for row in rows]


def super_admin_issues(db: Session, emails: set[str] | None = None) -> list[str]:
    emails = configured_super_admin_emails() if emails is None else {email.lower() for email in emails}
    issues: list[str] = []

    super_profiles = (
        db.query(Profile).join(UserRole, UserRole.user_id == Profile.id).filter(UserRole.role == "superuser").all()
    )
    for profile in super_profiles:
        member = db.query(Member).filter(
            (Member.user_id == profile.id) | (func.lower(Member.email) == (profile.email or "").lower())
        ).first()
        if member is None:
            issues.append(f"Super admin {profile.email} has no member record")

    known = {(profile.email or "").lower() for profile in super_profiles}
    for email in sorted(emails - known):
        profile = db.query(Profile).filter(func.lower(Profile.email) == email).first()
        if profile is None:
            issues.append(f"Configured super admin {email} has no profile")
        else:
            issues.append(f"Configured super admin {email} has no superuser role")
    return issues
