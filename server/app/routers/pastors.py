from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.auth.deps import get_current_user, require_admin
from app.core.db import get_db
from app.models.member import Member
from app.schemas.member import (
    AssignMembersRequest,
    AssignMembersResponse,
    MemberOut,
    PastorCreate,
    PastorOut,
    PastorUpdate,
)
from app.services.access import CurrentUser
from app.services.members_query import church_unit_filter
from app.services.members_utils import sync_church_units

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pastors", tags=["pastors"])

PASTOR_CATEGORY = "Pastors"


def _get_pastor_or_404(db: Session, pastor_id: str) -> Member:
    pastor = db.query(Member).filter(Member.id == pastor_id, Member.category == PASTOR_CATEGORY).first()
    if not pastor:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pastor not found")
    return pastor


def _assigned_counts(db: Session, pastor_ids: list[str]) -> dict[str, int]:
    if not pastor_ids:
        return {}
    rows = (
        db.query(Member.assigned_to_id, func.count(Member.id))
        .filter(Member.assigned_to_id.in_(pastor_ids))
        .group_by(Member.assigned_to_id)
        .all()
    )
    return {pastor_id: count for pastor_id, count in rows}


def _serialize(pastor: Member, count: int) -> PastorOut:
    out = PastorOut.model_validate(pastor)
    out.assigned_count = count
    return out


@router.get("", response_model=list[PastorOut])
def list_pastors(
    *,
    search: str | None = Query(default=None, min_length=1),
    title: str | None = Query(default=None),
    church_unit: str | None = Query(default=None),
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(get_current_user),
) -> list[PastorOut]:
    query = db.query(Member).filter(Member.category == PASTOR_CATEGORY)
    if not include_inactive:
        query = query.filter(Member.is_active.is_(True))
    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(func.lower(Member.full_name).like(pattern))
    if title:
        query = query.filter(func.lower(Member.title) == title.lower())
    if church_unit:
        query = query.filter(church_unit_filter(church_unit))

    pastors = query.order_by(Member.full_name.asc()).all()
    counts = _assigned_counts(db, [pastor.id for pastor in pastors])
    return [_serialize(pastor, counts.get(pastor.id, 0)) for pastor in pastors]


@router.post("", response_model=PastorOut, status_code=status.HTTP_201_CREATED)
def create_pastor(
    payload: PastorCreate,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
) -> PastorOut:
    email = payload.email.lower() if payload.email else None
    if email and db.query(Member).filter(func.lower(Member.email) == email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A member with this email already exists")

    pastor = Member(**payload.model_dump(exclude={"email"}), email=email, category=PASTOR_CATEGORY)
    sync_church_units(pastor)
    db.add(pastor)
    db.commit()
    db.refresh(pastor)
    return _serialize(pastor, 0)


@router.get("/{pastor_id}", response_model=PastorOut)
def get_pastor(
    pastor_id: str,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(get_current_user),
) -> PastorOut:
    pastor = _get_pastor_or_404(db, pastor_id)
    return _serialize(pastor, _assigned_counts(db, [pastor.id]).get(pastor.id, 0))


@router.patch("/{pastor_id}", response_model=PastorOut)
def update_pastor(
    pastor_id: str,
    payload: PastorUpdate,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
) -> PastorOut:
    pastor = _get_pastor_or_404(db, pastor_id)
    updates = payload.model_dump(exclude_unset=True)

    if updates.get("email"):
        email = updates["email"].lower()
        existing = db.query(Member).filter(func.lower(Member.email) == email).first()
        if existing and existing.id != pastor.id:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A member with this email already exists")
        updates["email"] = email

    for field, value in updates.items():
        if value is None and field in {"full_name", "is_active", "church_units"}:
            continue
        setattr(pastor, field, value)
    if "church_unit" in updates or "church_units" in updates:
        sync_church_units(pastor)
    pastor.category = PASTOR_CATEGORY

    db.commit()
    db.refresh(pastor)
    return _serialize(pastor, _assigned_counts(db, [pastor.id]).get(pastor.id, 0))


@router.get("/{pastor_id}/members", response_model=list[MemberOut])
def list_assigned_members(
    pastor_id: str,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
) -> list[MemberOut]:
    pastor = _get_pastor_or_404(db, pastor_id)
    members = (
        db.query(Member)
        .filter(Member.assigned_to_id == pastor.id)
        .order_by(Member.full_name.asc())
        .all()
    )
    return [MemberOut.model_validate(member) for member in members]


@router.post("/{pastor_id}/members", response_model=AssignMembersResponse)
def assign_members(
    pastor_id: str,
    payload: AssignMembersRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
) -> AssignMembersResponse:
    pastor = _get_pastor_or_404(db, pastor_id)
    requested = [member_id for member_id in dict.fromkeys(payload.member_ids) if member_id != pastor.id]
    members = db.query(Member).filter(Member.id.in_(requested)).all() if requested else []
    found = {member.id for member in members}

    for member in members:
        member.assigned_to_id = pastor.id
    db.commit()

    logger.info(
        "members assigned to pastor",
        extra={"actor": current_user.email, "pastor": pastor.id, "count": len(members)},
    )
    return AssignMembersResponse(
        pastor_id=pastor.id,
        updated=len(members),
        missing=[member_id for member_id in requested if member_id not in found],
    )


@router.delete("/{pastor_id}/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def unassign_member(
    pastor_id: str,
    member_id: str,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
) -> Response:
    pastor = _get_pastor_or_404(db, pastor_id)
    member = db.query(Member).filter(Member.id == member_id, Member.assigned_to_id == pastor.id).first()
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member is not assigned to this pastor")
    member.assigned_to_id = None
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
