from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.auth.deps import get_current_user, require_admin
from app.core.db import get_db
from app.models.member import Member
from app.schemas.member import (
    ChurchUnitOut,
    MemberCreate,
    MemberDetailOut,
    MemberListResponse,
    MemberUpdate,
)
from app.services.access import CurrentUser
from app.services.church_units import OFFICIAL_CHURCH_UNITS
from app.services.members_query import apply_member_sort, build_members_query
from app.services.members_utils import get_pastor, sync_church_units

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/members", tags=["members"])

REQUIRED_FIELDS = {"category", "role", "is_active", "church_units", "join_date"}


def _get_member_or_404(db: Session, member_id: str) -> Member:
    member = db.get(Member, member_id)
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")
    return member


def _ensure_email_available(db: Session, email: str | None, *, current_id: str | None = None) -> str | None:
    if not email:
        return None
    email = email.strip().lower()
    existing = db.query(Member).filter(func.lower(Member.email) == email).first()
    if existing and existing.id != current_id:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A member with this email already exists")
    return email


def _check_pastor(db: Session, pastor_id: str | None) -> None:
    if pastor_id and get_pastor(db, pastor_id) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Assigned pastor not found")


@router.get("/church-units", response_model=list[ChurchUnitOut])
def list_church_units(_: CurrentUser = Depends(get_current_user)) -> list[ChurchUnitOut]:
    return [ChurchUnitOut(id=unit.id, name=unit.name, description=unit.description) for unit in OFFICIAL_CHURCH_UNITS]


@router.get("", response_model=MemberListResponse)
@router.get("/", response_model=MemberListResponse, include_in_schema=False)
def list_members(
    *,
    q: str | None = Query(default=None),
    category: str | None = Query(default=None),
    church_unit: str | None = Query(default=None),
    assigned_to: str | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    linked: bool | None = Query(default=None, description="Filter by profile link status"),
    sort: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
) -> MemberListResponse:
    filters = dict(
        q=q,
        category=category,
        church_unit=church_unit,
        assigned_to=assigned_to,
        is_active=is_active,
        linked=linked,
    )
    total = build_members_query(db, base_query=db.query(Member.id), **filters).order_by(None).count()

    query = apply_member_sort(build_members_query(db, **filters), sort)
    items = query.offset((page - 1) * page_size).limit(page_size).all()
    return MemberListResponse(items=items, total=total, page=page, page_size=page_size)


@router.post("", response_model=MemberDetailOut, status_code=status.HTTP_201_CREATED)
@router.post("/", response_model=MemberDetailOut, status_code=status.HTTP_201_CREATED, include_in_schema=False)
def create_member(
    payload: MemberCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
) -> MemberDetailOut:
    data = payload.model_dump()
    data["email"] = _ensure_email_available(db, payload.email)
    _check_pastor(db, payload.assigned_to_id)
    if data.get("join_date") is None:
        data.pop("join_date")

    member = Member(**data)
    sync_church_units(member)
    db.add(member)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Member could not be saved") from exc
    db.refresh(member)

    logger.info("member created", extra={"actor": current_user.email, "member": member.id})
    return MemberDetailOut.model_validate(member)


@router.get("/{member_id}", response_model=MemberDetailOut)
def get_member(
    member_id: str,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
) -> MemberDetailOut:
    member = (
        db.query(Member)
        .options(selectinload(Member.assigned_pastor))
        .filter(Member.id == member_id)
        .first()
    )
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")
    return MemberDetailOut.model_validate(member)


@router.put("/{member_id}", response_model=MemberDetailOut)
@router.patch("/{member_id}", response_model=MemberDetailOut)
def update_member(
    member_id: str,
    payload: MemberUpdate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
) -> MemberDetailOut:
    member = _get_member_or_404(db, member_id)
    updates = payload.model_dump(exclude_unset=True)

    if "email" in updates:
        updates["email"] = _ensure_email_available(db, updates["email"], current_id=member.id)
    if updates.get("assigned_to_id"):
        if updates["assigned_to_id"] == member.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A member cannot be assigned to themselves")
        _check_pastor(db, updates["assigned_to_id"])
    if "full_name" in updates and not updates["full_name"]:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Full name is required")

    for field, value in updates.items():
        if value is None and field in REQUIRED_FIELDS:
            continue
        setattr(member, field, value)
    if "church_unit" in updates or "church_units" in updates:
        sync_church_units(member)

    db.commit()
    db.refresh(member)
    logger.info("member updated", extra={"actor": current_user.email, "member": member.id, "fields": sorted(updates)})
    return MemberDetailOut.model_validate(member)


@router.delete("/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_member(
    member_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
) -> Response:
    member = _get_member_or_404(db, member_id)
    # Members assigned to this one lose their pastor rather than blocking the delete.
    for assigned in list(member.assigned_members):
        assigned.assigned_to_id = None
    db.delete(member)
    db.commit()
    logger.info("member deleted", extra={"actor": current_user.email, "member": member_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)

