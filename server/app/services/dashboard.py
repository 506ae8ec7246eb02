from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.member import Member
from app.models.profile import Profile
from app.models.user_role import UserRole

logger = logging.getLogger(__name__)


@dataclass
class DashboardMetrics:
    total_members: int = 0
    active_members: int = 0
    new_members: int = 0
    registered_users: int = 0
    admin_users: int = 0
    super_admins: int = 0
    pastors: int = 0
    church_units: dict[str, int] = field(default_factory=dict)
    system_status: str = "Healthy"
    last_updated: datetime = field(default_factory=datetime.utcnow)
    error: str | None = None


def _count_role(db: Session, role: str) -> int:
    return db.query(func.count(func.distinct(UserRole.user_id))).filter(UserRole.role == role).scalar() or 0


def church_unit_distribution(db: Session) -> dict[str, int]:
    counts: Counter[str] = Counter()
    for church_unit, church_units in db.query(Member.church_unit, Member.church_units).filter(Member.is_active.is_(True)):
        units = set(church_units or [])
        if church_unit:
            units.add(church_unit)
        counts.update(units)
    return dict(sorted(counts.items()))


def collect_metrics(db: Session, *, today: date | None = None) -> DashboardMetrics:
    today = today or date.today()
    window_start = today - timedelta(days=settings.NEW_MEMBER_WINDOW_DAYS)
    try:
        return DashboardMetrics(
            total_members=db.query(func.count(Member.id)).scalar() or 0,
            active_members=db.query(func.count(Member.id)).filter(Member.is_active.is_(True)).scalar() or 0,
            new_members=db.query(func.count(Member.id)).filter(Member.join_date >= window_start).scalar() or 0,
            registered_users=db.query(func.count(Profile.id)).scalar() or 0,
            admin_users=_count_role(db, "admin"),
            super_admins=_count_role(db, "superuser"),
            pastors=db.query(func.count(Member.id)).filter(Member.category == "Pastors").scalar() or 0,
            church_units=church_unit_distribution(db),
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("dashboard metrics failed")
        return DashboardMetrics(system_status="Warning", error=str(exc))
