from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

EVENT_TYPES = {"service", "conference", "prayer", "outreach", "fellowship", "youth", "special"}
SERMON_TYPES = {"sunday_service", "midweek", "special", "conference", "bible_study"}
ANNOUNCEMENT_TYPES = {"general", "urgent", "event", "ministry"}
TARGET_AUDIENCES = {"all", "members", "pastors", "workers", "admins"}


class EventBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    event_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    location: Optional[str] = Field(None, max_length=255)
    image_url: Optional[str] = Field(None, max_length=500)
    event_type: str = "service"
    is_recurring: bool = False
    recurrence_pattern: Optional[str] = Field(None, max_length=100)
    is_active: bool = True

    @model_validator(mode="after")
    def check_event(self: "EventBase") -> "EventBase":
        if self.event_type not in EVENT_TYPES:
            raise ValueError("Invalid event type")
        if self.start_time and self.end_time and self.end_time < self.start_time:
            raise ValueError("End time must be after start time")
        return self


class EventCreate(EventBase):
    pass


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    event_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    location: Optional[str] = Field(None, max_length=255)
    image_url: Optional[str] = Field(None, max_length=500)
    event_type: Optional[str] = None
    is_recurring: Optional[bool] = None
    recurrence_pattern: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def check_type(self: "EventUpdate") -> "EventUpdate":
        if self.event_type is not None and self.event_type not in EVENT_TYPES:
            raise ValueError("Invalid event type")
        return self


class EventOut(EventBase):
    id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SermonBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    speaker: str = Field(..., min_length=1, max_length=255)
    sermon_date: date
    sermon_type: str = "sunday_service"
    description: Optional[str] = None
    audio_url: Optional[str] = Field(None, max_length=500)
    video_url: Optional[str] = Field(None, max_length=500)
    image_url: Optional[str] = Field(None, max_length=500)
    scripture_reference: Optional[str] = Field(None, max_length=255)
    series_name: Optional[str] = Field(None, max_length=255)
    tags: List[str] = Field(default_factory=list)
    duration_minutes: Optional[int] = Field(None, ge=0)
    is_published: bool = False

    @model_validator(mode="after")
    def check_type(self: "SermonBase") -> "SermonBase":
        if self.sermon_type not in SERMON_TYPES:
            raise ValueError("Invalid sermon type")
        return self


class SermonCreate(SermonBase):
    pass


class SermonUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    speaker: Optional[str] = Field(None, min_length=1, max_length=255)
    sermon_date: Optional[date] = None
    sermon_type: Optional[str] = None
    description: Optional[str] = None
    audio_url: Optional[str] = Field(None, max_length=500)
    video_url: Optional[str] = Field(None, max_length=500)
    image_url: Optional[str] = Field(None, max_length=500)
    scripture_reference: Optional[str] = Field(None, max_length=255)
    series_name: Optional[str] = Field(None, max_length=255)
    tags: Optional[List[str]] = None
    duration_minutes: Optional[int] = Field(None, ge=0)
    is_published: Optional[bool] = None

    @model_validator(mode="after")
    def check_type(self: "SermonUpdate") -> "SermonUpdate":
        if self.sermon_type is not None and self.sermon_type not in SERMON_TYPES:
            raise ValueError("Invalid sermon type")
        return self


class SermonOut(SermonBase):
    id: str
    view_count: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AnnouncementBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    announcement_type: str = "general"
    target_audience: str = "all"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: bool = True

    @model_validator(mode="after")
    def check_announcement(self: "AnnouncementBase") -> "AnnouncementBase":
        if self.announcement_type not in ANNOUNCEMENT_TYPES:
            raise ValueError("Invalid announcement type")
        if self.target_audience not in TARGET_AUDIENCES:
            raise ValueError("Invalid target audience")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("End date must be on or after start date")
        return self


class AnnouncementCreate(AnnouncementBase):
    pass


class AnnouncementUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = Field(None, min_length=1)
    announcement_type: Optional[str] = None
    target_audience: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def check_choices(self: "AnnouncementUpdate") -> "AnnouncementUpdate":
        if self.announcement_type is not None and self.announcement_type not in ANNOUNCEMENT_TYPES:
            raise ValueError("Invalid announcement type")
        if self.target_audience is not None and self.target_audience not in TARGET_AUDIENCES:
            raise ValueError("Invalid target audience")
        return self


class AnnouncementOut(AnnouncementBase):
    id: str
    created_at: datetime

    class Config:
        from_attributes = True
