"""Profile <-> member reconciliation.

Every step is check-then-insert against the live tables. There is no locking: a
concurrent writer can still slip a duplicate in between the check and the
insert, in which case the unique email index rejects it and the failure is
reported in the result instead of raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Sequence

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.baas import AuthUser
from app.models.member import MEMBER_CATEGORIES, Member
from app.models.profile import Profile
from app.models.user_role import APP_ROLES
from app.services.accounts import ensure_profile
from app.services.church_units import normalize_church_units
from app.services.members_utils import display_name_for, get_pastor

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50


@dataclass
class SyncResult:
    success: bool
    message: str
    existing: bool = False
    member: Member | None = None


@dataclass
class SyncError:
    email: str
    error: str


@dataclass
class ValidationFailure:
    email: str
    errors: list[str]


@dataclass
class BulkSyncResult:
    success: bool
    message: str
    added: int = 0
    errors: list[SyncError] = field(default_factory=list)
    validation_errors: list[ValidationFailure] = field(default_factory=list)
    refresh_needed: bool = False
    added_members: list[Member] = field(default_factory=list)


@dataclass
class MemberConflict:
    member_id: str
    email: str | None
    conflicts: list[str]


@dataclass
class ConsolidationReport:
    updated: int = 0
    conflicts: list[MemberConflict] = field(default_factory=list)


@dataclass
class ReconciliationReport:
    profiles_created: int = 0
    members_linked: int = 0
    sync: BulkSyncResult | None = None
    consolidation: ConsolidationReport | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors and (self.sync is None or self.sync.success)


def validate_member_data(member: Member) -> list[str]:
    errors: list[str] = []
    if not member.email or "@" not in member.email:
        errors.append("Invalid email address")
    if not member.full_name or len(member.full_name.strip()) < 2:
        errors.append("Full name must be at least 2 characters")
    if not member.user_id:
        errors.append("User ID is required")
    if member.category not in MEMBER_CATEGORIES:
        errors.append("Invalid member category")
    if member.role not in APP_ROLES:
        errors.append("Invalid user role")
    return errors


def find_member(db: Session, email: str | None, user_id: str | None = None) -> Member | None:
    if email:
        match = db.query(Member).filter(func.lower(Member.email) == email.strip().lower()).first()
        if match is not None:
            return match
    if user_id:
        return db.query(Member).filter(Member.user_id == user_id).first()
    return None


def member_exists(db: Session, email: str | None, user_id: str | None = None) -> bool:
    return find_member(db, email, user_id) is not None


def find_profile_by_email(db: Session, email: str) -> Profile | None:
    return (
        db.query(Profile)
        .filter(func.lower(Profile.email) == email.strip().lower())
        .order_by(Profile.created_at.asc())
        .first()
    )


def build_member_from_profile(db: Session, profile: Profile, *, category: str = "Members") -> Member:
    church_units = normalize_church_units([profile.church_unit]) if profile.church_unit else []
    pastor = get_pastor(db, profile.assigned_pastor)
    return Member(
        user_id=profile.id,
        full_name=display_name_for(profile.email, profile.full_name),
        email=profile.email.strip().lower() if profile.email else None,
        phone=profile.phone,
        address=profile.address,
        genotype=profile.genotype,
        category=category,
        church_unit=church_units[0] if church_units else None,
        church_units=church_units,
        assigned_to_id=pastor.id if pastor else None,
        join_date=date.today(),
        is_active=True,
        role="user",
    )


def _insert_member(db: Session, member: Member) -> SyncResult:
    try:
        db.add(member)
        db.commit()
        db.refresh(member)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("member insert failed", extra={"email": member.email, "error": str(exc)})
        return SyncResult(success=False, message=f"Error inserting member: {exc}")
    return SyncResult(success=True, message=f"Successfully added member with email: {member.email}", member=member)


def sync_specific_user(db: Session, email: str) -> SyncResult:
    """Make sure the profile registered under ``email`` has a member record."""

    email = email.strip()
    logger.info("sync_specific_user", extra={"email": email})
    try:
        profile = find_profile_by_email(db, email)
        if profile is None:
            return SyncResult(success=False, message=f"No profile found with email: {email}")
        existing = find_member(db, profile.email or email, profile.id)
        member = None if existing is not None else build_member_from_profile(db, profile)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("profile lookup failed", extra={"email": email, "error": str(exc)})
        return SyncResult(success=False, message=f"Error fetching profile: {exc}")

    if existing is not None:
        return SyncResult(
            success=True,
            message=f"Member already exists with email: {email}",
            existing=True,
            member=existing,
        )
    return _insert_member(db, member)


def manual_sync_profile(db: Session, profile_id: str) -> SyncResult:
    try:
        profile = db.get(Profile, profile_id)
        if profile is None:
            return SyncResult(success=False, message="Profile not found")
        existing = find_member(db, profile.email, profile.id)
        member = None if existing is not None else build_member_from_profile(db, profile)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("profile lookup failed", extra={"profile_id": profile_id, "error": str(exc)})
        return SyncResult(success=False, message=f"Error fetching profile: {exc}")
    if existing is not None:
        return SyncResult(success=True, message="Member already exists", existing=True, member=existing)

    errors = validate_member_data(member)
    if errors:
        return SyncResult(success=False, message=f"Validation failed: {', '.join(errors)}")

    result = _insert_member(db, member)
    if result.success:
        result.message = f"Successfully added {member.full_name} to members"
    return result


def _chunks(items: Sequence[Member], size: int) -> Iterable[Sequence[Member]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


def _insert_chunk(db: Session, chunk: Sequence[Member], result: BulkSyncResult) -> None:
    try:
        db.add_all(chunk)
        db.commit()
        result.added_members.extend(chunk)
        return
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("chunk insert failed, retrying row by row", extra={"size": len(chunk), "error": str(exc)})

    for member in chunk:
        # Rolled-back objects are transient again; re-add them individually.
        try:
            db.add(member)
            db.commit()
            result.added_members.append(member)
        except SQLAlchemyError as exc:
            db.rollback()
            result.errors.append(SyncError(email=member.email or "unknown", error=str(exc.orig if hasattr(exc, "orig") else exc)))


def sync_profiles_to_members(db: Session, batch_size: int = DEFAULT_BATCH_SIZE) -> BulkSyncResult:
    """Create member records for every profile that has none."""

    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    try:
        profiles = db.query(Profile).order_by(Profile.created_at.desc()).all()
        existing_rows = db.query(Member.email, Member.user_id).all()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("profile sync lookup failed", extra={"error": str(exc)})
        return BulkSyncResult(success=False, message=str(exc))

    if not profiles:
        return BulkSyncResult(success=True, message="No profiles found to sync")

    existing_emails = {email.strip().lower() for email, _ in existing_rows if email}
    existing_user_ids = {user_id for _, user_id in existing_rows if user_id}

    result = BulkSyncResult(success=True, message="", refresh_needed=True)
    to_insert: list[Member] = []
    try:
        for profile in profiles:
            email = (profile.email or "").strip().lower()
            if email in existing_emails or profile.id in existing_user_ids:
                continue
            member = build_member_from_profile(db, profile)
            errors = validate_member_data(member)
            if errors:
                result.validation_errors.append(ValidationFailure(email=profile.email or "unknown", errors=errors))
                continue
            to_insert.append(member)
            # Two profiles sharing an email would collide on the unique index.
            existing_emails.add(email)
            existing_user_ids.add(profile.id)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("profile sync lookup failed", extra={"error": str(exc)})
        return BulkSyncResult(success=False, message=str(exc))

    if result.validation_errors:
        logger.warning("profiles failed validation", extra={"count": len(result.validation_errors)})

    if not to_insert:
        result.message = "All profiles are already in members table."
        return result

    for chunk in _chunks(to_insert, batch_size):
        _insert_chunk(db, chunk, result)

    result.added = len(result.added_members)
    if result.added:
        names = ", ".join(member.full_name or member.email or "unknown" for member in result.added_members)
        result.message = f"Successfully added {result.added} new members from user profiles: {names}"
    else:
        result.message = "All registered users are already in the members table"
    if result.errors:
        result.message += f". Failed to add {len(result.errors)} members due to errors."
    logger.info("profile_sync", extra={"added": result.added, "failed": len(result.errors)})
    return result


def _link_members(db: Session) -> int:
    profiles_by_email = {
        profile.email.strip().lower(): profile.id
        for profile in db.query(Profile).filter(Profile.email.isnot(None)).all()
    }
    linked_ids = {row[0] for row in db.query(Member.user_id).filter(Member.user_id.isnot(None)).all()}

    linked = 0
    for member in db.query(Member).filter(Member.user_id.is_(None), Member.email.isnot(None)).all():
        profile_id = profiles_by_email.get(member.email.strip().lower())
        if profile_id is None or profile_id in linked_ids:
            continue
        member.user_id = profile_id
        linked_ids.add(profile_id)
        linked += 1

    if linked:
        db.commit()
    return linked


def link_members_to_profiles(db: Session) -> int:
    """Attach unlinked members to the profile registered under the same email."""

    try:
        return _link_members(db)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("member linking failed", extra={"error": str(exc)})
        return 0


def _ensure_profiles(db: Session, auth_users: Iterable[AuthUser]) -> int:
    created = 0
    for auth_user in auth_users:
        _, was_created = ensure_profile(db, auth_user)
        if was_created:
            created += 1
    db.commit()
    return created


def ensure_profiles_for_auth_users(db: Session, auth_users: Iterable[AuthUser]) -> int:
    try:
        return _ensure_profiles(db, auth_users)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("profile backfill failed", extra={"error": str(exc)})
        return 0


_FILLABLE_FIELDS = (
    ("phone", "phone"),
    ("address", "address"),
    ("genotype", "genotype"),
)


def _consolidate(db: Session) -> ConsolidationReport:
    report = ConsolidationReport()
    rows = db.query(Member, Profile).join(Profile, Member.user_id == Profile.id).all()
    for member, profile in rows:
        changed = False
        conflicts: list[str] = []

        if not member.full_name and profile.full_name:
            member.full_name = profile.full_name
            changed = True
        elif member.full_name and profile.full_name and member.full_name != profile.full_name:
            conflicts.append(f'Name: members="{member.full_name}" vs profiles="{profile.full_name}"')

        if member.email and profile.email and member.email.lower() != profile.email.lower():
            conflicts.append(f'Email: members="{member.email}" vs profiles="{profile.email}"')

        if member.phone and profile.phone and member.phone != profile.phone:
            conflicts.append(f'Phone: members="{member.phone}" vs profiles="{profile.phone}"')

        for member_field, profile_field in _FILLABLE_FIELDS:
            profile_value = getattr(profile, profile_field)
            if profile_value and not getattr(member, member_field):
                setattr(member, member_field, profile_value)
                changed = True

        if profile.church_unit and not member.church_unit:
            units = normalize_church_units([profile.church_unit])
            if units:
                member.church_unit = units[0]
                member.church_units = normalize_church_units([*(member.church_units or []), units[0]])
                changed = True

        if changed:
            report.updated += 1
        if conflicts:
            report.conflicts.append(MemberConflict(member_id=member.id, email=member.email, conflicts=conflicts))

    if report.updated:
        db.commit()
    return report


def consolidate_profile_fields(db: Session) -> ConsolidationReport:
    """Fill blank member fields from the linked profile and report disagreements."""

    try:
        return _consolidate(db)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("profile consolidation failed", extra={"error": str(exc)})
        return ConsolidationReport()


def reconcile_all(
    db: Session,
    auth_users: Iterable[AuthUser] | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> ReconciliationReport:
    report = ReconciliationReport()

    def run(step: str, operation, default):
        try:
            return operation()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("reconciliation step failed", extra={"step": step, "error": str(exc)})
            report.errors.append(f"{step}: {exc}")
            return default

    if auth_users is not None:
        report.profiles_created = run("profiles", lambda: _ensure_profiles(db, auth_users), 0)
    report.members_linked = run("link", lambda: _link_members(db), 0)
    report.sync = sync_profiles_to_members(db, batch_size=batch_size)
    report.consolidation = run("consolidate", lambda: _consolidate(db), ConsolidationReport())
    return report


def sync_status(db: Session) -> dict[str, int]:
    try:
        total_profiles = db.query(func.count(Profile.id)).scalar() or 0
        total_members = db.query(func.count(Member.id)).scalar() or 0
        linked = db.query(func.count(Member.id)).filter(Member.user_id.isnot(None)).scalar() or 0
        unmatched_profiles = (
            db.query(func.count(Profile.id))
            .outerjoin(
                Member,
                or_(
                    Member.user_id == Profile.id,
                    func.lower(Member.email) == func.lower(Profile.email),
                ),
            )
            .filter(Member.id.is_(None))
            .scalar()
            or 0
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("sync status query failed", extra={"error": str(exc)})
        total_profiles = total_members = linked = unmatched_profiles = 0
    return {
        "profiles": total_profiles,
        "members": total_members,
        "members_with_user_id": linked,
        "members_without_user_id": total_members - linked,
        "profiles_without_member": unmatched_profiles,
    }
