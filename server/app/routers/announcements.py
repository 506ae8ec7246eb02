from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.auth.deps import require_admin
from app.core.db import get_db
from app.models.content import Announcement
from app.schemas.content import AnnouncementCreate, AnnouncementOut, AnnouncementUpdate
from app.services.access import CurrentUser

router = APIRouter(prefix="/announcements", tags=["announcements"])


def _get_announcement_or_404(db: Session, announcement_id: str) -> Announcement:
    announcement = db.get(Announcement, announcement_id)
    if not announcement:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")
    return announcement


@router.get("", response_model=list[AnnouncementOut])
def list_announcements(
    *,
    audience: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[AnnouncementOut]:
    today = date.today()
    query = db.query(Announcement).filter(
        Announcement.is_active.is_(True),
        Announcement.start_date <= today,
        or_(Announcement.end_date.is_(None), Announcement.end_date >= today),
    )
    if audience:
        query = query.filter(Announcement.target_audience.in_(["all", audience]))
    items = query.order_by(Announcement.created_at.desc()).all()
    return [AnnouncementOut.model_validate(item) for item in items]


@router.get("/all", response_model=list[AnnouncementOut])
def list_all_announcements(
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
) -> list[AnnouncementOut]:
    items = db.query(Announcement).order_by(Announcement.created_at.desc()).all()
    return [AnnouncementOut.model_validate(item) for item in items]


@router.post("", response_model=AnnouncementOut, status_code=status.HTTP_201_CREATED)
def create_announcement(
    payload: AnnouncementCreate,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
) -> AnnouncementOut:
    data = payload.model_dump()
    if data.get("start_date") is None:
        data.pop("start_date")
    announcement = Announcement(**data)
    db.add(announcement)
    db.commit()
    db.refresh(announcement)
    return AnnouncementOut.model_validate(announcement)


@router.patch("/{announcement_id}", response_model=AnnouncementOut)
def update_announcement(
    announcement_id: str,
    payload: AnnouncementUpdate,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
) -> AnnouncementOut:
    announcement = _get_announcement_or_404(db, announcement_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field in {"start_date", "is_active"}:
            continue
        setattr(announcement, field, value)
    if announcement.end_date and announcement.end_date < announcement.start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="End date must be on or after start date")
    db.commit()
    db.refresh(announcement)
    return AnnouncementOut.model_validate(announcement)


@router.delete("/{announcement_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_announcement(
    announcement_id: str,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
) -> Response:
    announcement = _get_announcement_or_404(db, announcement_id)
    db.delete(announcement)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
