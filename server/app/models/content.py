from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Integer, String, Text, Time

from app.core.db import Base
from app.models.user_role import new_uuid


class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=new_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    event_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    location = Column(String(255), nullable=True)
    image_url = Column(String(500), nullable=True)
    event_type = Column(String(50), nullable=False, default="service")
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurrence_pattern = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Sermon(Base):
    __tablename__ = "sermons"

    id = Column(String(36), primary_key=True, default=new_uuid)
    title = Column(String(255), nullable=False)
    speaker = Column(String(255), nullable=False)
    sermon_date = Column(Date, nullable=False, index=True)
    sermon_type = Column(String(50), nullable=False, default="sunday_service")
    description = Column(Text, nullable=True)
    audio_url = Column(String(500), nullable=True)
    video_url = Column(String(500), nullable=True)
    image_url = Column(String(500), nullable=True)
    scripture_reference = Column(String(255), nullable=True)
    series_name = Column(String(255), nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    duration_minutes = Column(Integer, nullable=True)
    is_published = Column(Boolean, nullable=False, default=False)
    view_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Announcement(Base):
    __tablename__ = "announcements"

    id = Column(String(36), primary_key=True, default=new_uuid)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    announcement_type = Column(String(50), nullable=False, default="general")
    target_audience = Column(String(50), nullable=False, default="all")
    start_date = Column(Date, nullable=False, default=date.today)
    end_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
