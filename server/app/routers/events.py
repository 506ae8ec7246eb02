from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from app.auth.deps import require_admin
from app.core.db import get_db
from app.models.content import Event
from app.schemas.content import EventCreate, EventOut, EventUpdate
from app.services.access import CurrentUser

router = APIRouter(prefix="/events", tags=["events"])

REQUIRED_FIELDS = {"title", "event_date", "event_type", "is_recurring", "is_active"}


def _get_event_or_404(db: Session, event_id: str) -> Event:
    event = db.get(Event, event_id)
    if not event:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return event


@router.get("", response_model=list[EventOut])
def list_events(
    *,
    upcoming: bool = Query(default=True),
    event_type: str | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
) -> list[EventOut]:
    query = db.query(Event).filter(Event.is_active.is_(True))
    if upcoming:
        query = query.filter(Event.event_date >= date.today()).order_by(Event.event_date.asc(), Event.start_time.asc())
    else:
        query = query.order_by(Event.event_date.desc())
    if event_type:
        query = query.filter(Event.event_type == event_type)
    return [EventOut.model_validate(item) for item in query.limit(limit).all()]


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: str, db: Session = Depends(get_db)) -> EventOut:
    event = _get_event_or_404(db, event_id)
    if not event.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return EventOut.model_validate(event)


@router.post("", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
) -> EventOut:
    event = Event(**payload.model_dump())
    db.add(event)
    db.commit()
    db.refresh(event)
    return EventOut.model_validate(event)


@router.patch("/{event_id}", response_model=EventOut)
def update_event(
    event_id: str,
    payload: EventUpdate,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
) -> EventOut:
    event = _get_event_or_404(db, event_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field in REQUIRED_FIELDS:
            continue
        setattr(event, field, value)
    if event.start_time and event.end_time and event.end_time < event.start_time:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="End time must be after start time")
    db.commit()
    db.refresh(event)
    return EventOut.model_validate(event)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(
    event_id: str,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
) -> Response:
    event = _get_event_or_404(db, event_id)
    db.delete(event)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
