from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.auth.deps import require_admin
from app.core.db import get_db
from app.models.content import Sermon
from app.schemas.content import SermonCreate, SermonOut, SermonUpdate
from app.services.access import CurrentUser

router = APIRouter(prefix="/sermons", tags=["sermons"])


def _get_sermon_or_404(db: Session, sermon_id: str) -> Sermon:
    sermon = db.get(Sermon, sermon_id)
    if not sermon:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sermon not found")
    return sermon


@router.get("", response_model=list[SermonOut])
def list_sermons(
    *,
    search: str | None = Query(default=None, min_length=1),
    speaker: str | None = Query(default=None),
    series: str | None = Query(default=None),
    sermon_type: str | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> list[SermonOut]:
    query = db.query(Sermon).filter(Sermon.is_published.is_(True))
    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(func.lower(Sermon.title).like(pattern) | func.lower(Sermon.description).like(pattern))
    if speaker:
        query = query.filter(func.lower(Sermon.speaker) == speaker.lower())
    if series:
        query = query.filter(Sermon.series_name == series)
    if sermon_type:
        query = query.filter(Sermon.sermon_type == sermon_type)
    items = query.order_by(Sermon.sermon_date.desc()).offset(offset).limit(limit).all()
    return [SermonOut.model_validate(item) for item in items]


@router.get("/recent", response_model=list[SermonOut])
def recent_sermons(
    limit: int = Query(default=3, ge=1, le=20),
    db: Session = Depends(get_db),
) -> list[SermonOut]:
    items = (
        db.query(Sermon)
        .filter(Sermon.is_published.is_(True))
        .order_by(Sermon.sermon_date.desc())
        .limit(limit)
        .all()
    )
    return [SermonOut.model_validate(item) for item in items]


@router.get("/{sermon_id}", response_model=SermonOut)
def get_sermon(sermon_id: str, db: Session = Depends(get_db)) -> SermonOut:
    sermon = _get_sermon_or_404(db, sermon_id)
    if not sermon.is_published:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sermon not found")
    sermon.view_count = (sermon.view_count or 0) + 1
    db.commit()
    db.refresh(sermon)
    return SermonOut.model_validate(sermon)


@router.post("", response_model=SermonOut, status_code=status.HTTP_201_CREATED)
def create_sermon(
    payload: SermonCreate,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
) -> SermonOut:
    sermon = Sermon(**payload.model_dump())
    db.add(sermon)
    db.commit()
    db.refresh(sermon)
    return SermonOut.model_validate(sermon)


@router.patch("/{sermon_id}", response_model=SermonOut)
def update_sermon(
    sermon_id: str,
    payload: SermonUpdate,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
) -> SermonOut:
    sermon = _get_sermon_or_404(db, sermon_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field in {"tags", "is_published"}:
            continue
        setattr(sermon, field, value)
    db.commit()
    db.refresh(sermon)
    return SermonOut.model_validate(sermon)


@router.delete("/{sermon_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_sermon(
    sermon_id: str,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
) -> Response:
    sermon = _get_sermon_or_404(db, sermon_id)
    db.delete(sermon)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
