from __future__ import annotations

import argparse
import sys
from datetime import date, time, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

import app.models  # noqa: F401
from app.core.db import Base, SessionLocal, engine
from app.models.content import Announcement, Event, Sermon
from app.models.member import Member

DEMO_PASTORS = [
    ("Pastor Samuel Adeyemi", "samuel.adeyemi@example.com", "Senior Pastor", "Discipleship"),
    ("Pastor Grace Okafor", "grace.okafor@example.com", "Associate Pastor", "Praise Feet"),
    ("Pastor John Eze", "john.eze@example.com", "Youth Pastor", "3HMedia"),
]

DEMO_MEMBERS = [
    ("Chinedu Obi", "chinedu.obi@example.com", "08031234567", "Members", ["3HMusic"]),
    ("Amaka Nwosu", "amaka.nwosu@example.com", "07061234567", "Workers", ["Ushering", "Sanitation"]),
    ("Tunde Bakare", "tunde.bakare@example.com", "+2348091234567", "Members", ["3HSecurity"]),
    ("Ngozi Eze", "ngozi.eze@example.com", "09031234567", "Partners", []),
    ("Ibrahim Musa", "ibrahim.musa@example.com", "08121234567", "Visitors", []),
    ("Blessing Udo", "blessing.udo@example.com", "07011234567", "MINT", ["3HMovies"]),
]

DEMO_EVENTS = [
    ("Sunday Worship Service", "service", 3, time(9, 0), time(12, 0), True, "weekly"),
    ("Midweek Bible Study", "prayer", 6, time(18, 0), time(19, 30), True, "weekly"),
    ("Youth Conference", "conference", 20, time(10, 0), time(16, 0), False, None),
]

DEMO_SERMONS = [
    ("Walking in Faith", "Pastor Samuel Adeyemi", 7, "Hebrews 11:1-6", "Foundations"),
    ("The Power of Prayer", "Pastor Grace Okafor", 14, "James 5:13-18", "Foundations"),
    ("Serving with Joy", "Pastor John Eze", 21, "Psalm 100", None),
]

DEMO_ANNOUNCEMENTS = [
    ("Welcome to Gospel Labour Ministry", "We are glad to have you with us.", "general", "all"),
    ("Workers' Meeting", "All unit workers meet after service on Sunday.", "ministry", "workers"),
]


def _member_by_email(db: Session, email: str) -> Member | None:
    return db.query(Member).filter(func.lower(Member.email) == email.lower()).first()


def ensure_pastors(db: Session) -> list[Member]:
    pastors: list[Member] = []
    for full_name, email, title, unit in DEMO_PASTORS:
        pastor = _member_by_email(db, email)
        if pastor is None:
            pastor = Member(
                full_name=full_name,
                email=email,
                title=title,
                category="Pastors",
                church_unit=unit,
                church_units=[unit],
            )
            db.add(pastor)
        pastors.append(pastor)
    db.commit()
    return pastors


def ensure_members(db: Session, pastors: list[Member]) -> None:
    for index, (full_name, email, phone, category, units) in enumerate(DEMO_MEMBERS):
        if _member_by_email(db, email) is not None:
            continue
        db.add(
            Member(
                full_name=full_name,
                email=email,
                phone=phone,
                category=category,
                church_unit=units[0] if units else None,
                church_units=units,
                assigned_to_id=pastors[index % len(pastors)].id,
                join_date=date.today() - timedelta(days=15 * index),
            )
        )
    db.commit()


def ensure_events(db: Session) -> None:
    for title, event_type, days_ahead, start, end, recurring, pattern in DEMO_EVENTS:
        if db.query(Event).filter(Event.title == title).first():
            continue
        db.add(
            Event(
                title=title,
                event_type=event_type,
                event_date=date.today() + timedelta(days=days_ahead),
                start_time=start,
                end_time=end,
                location="Gospel Labour Ministry Main Auditorium",
                is_recurring=recurring,
                recurrence_pattern=pattern,
            )
        )
    db.commit()


def ensure_sermons(db: Session) -> None:
    for title, speaker, days_ago, scripture, series in DEMO_SERMONS:
        if db.query(Sermon).filter(Sermon.title == title).first():
            continue
        db.add(
            Sermon(
                title=title,
                speaker=speaker,
                sermon_date=date.today() - timedelta(days=days_ago),
                scripture_reference=scripture,
                series_name=series,
                tags=["faith"] if series else [],
                duration_minutes=45,
                is_published=True,
            )
        )
    db.commit()


def ensure_announcements(db: Session) -> None:
    for title, content, announcement_type, audience in DEMO_ANNOUNCEMENTS:
        if db.query(Announcement).filter(Announcement.title == title).first():
            continue
        db.add(
            Announcement(
                title=title,
                content=content,
                announcement_type=announcement_type,
                target_audience=audience,
                end_date=date.today() + timedelta(days=30),
            )
        )
    db.commit()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Load demo pastors, members and content.")
    parser.add_argument("--create-tables", action="store_true", help="Create tables first (local databases only)")
    args = parser.parse_args(argv)

    if args.create_tables:
        Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        pastors = ensure_pastors(db)
        ensure_members(db, pastors)
        ensure_events(db)
        ensure_sermons(db)
        ensure_announcements(db)
    finally:
        db.close()
    print("✅ Demo data loaded")
    return 0


if __name__ == "__main__":
    sys.exit(main())
