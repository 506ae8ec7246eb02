from __future__ import annotations

from fastapi import HTTPException, status
from sqlalchemy import String, asc, cast, desc, func, or_
from sqlalchemy.orm import Query, Session

from app.models.member import MEMBER_CATEGORIES, Member
from app.services.church_units import official_name

SORTABLE_FIELDS = {
    "full_name": Member.full_name,
    "email": Member.email,
    "join_date": Member.join_date,
    "created_at": Member.created_at,
    "updated_at": Member.updated_at,
}


def church_unit_filter(unit: str):
    name = official_name(unit)
    # church_units is a JSON array; match the quoted element inside its text form.
    return or_(Member.church_unit == name, cast(Member.church_units, String).like(f'%"{name}"%'))


def build_members_query(
    db: Session,
    *,
    base_query: Query | None = None,
    q: str | None = None,
    category: str | None = None,
    church_unit: str | None = None,
    assigned_to: str | None = None,
    is_active: bool | None = None,
    linked: bool | None = None,
) -> Query:
    query: Query = base_query if base_query is not None else db.query(Member)

    if q:
        pattern = f"%{q.lower()}%"
        query = query.filter(
            or_(
                func.lower(Member.full_name).like(pattern),
                func.lower(Member.email).like(pattern),
                func.lower(Member.phone).like(pattern),
            )
        )

    if category:
        if category not in MEMBER_CATEGORIES:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Invalid category filter")
        query = query.filter(Member.category == category)

    if church_unit:
        query = query.filter(church_unit_filter(church_unit))

    if assigned_to:
        query = query.filter(Member.assigned_to_id == assigned_to)

    if is_active is not None:
        query = query.filter(Member.is_active.is_(is_active))

    if linked is not None:
        query = query.filter(Member.user_id.isnot(None) if linked else Member.user_id.is_(None))

    return query


def apply_member_sort(query: Query, sort_param: str | None) -> Query:
    if not sort_param:
        return query.order_by(asc(Member.full_name))

    order_columns = []
    for raw_key in sort_param.split(","):
        key = raw_key.strip()
        if not key:
            continue
        direction = asc
        if key.startswith("-"):
            direction = desc
            key = key[1:]
        column = SORTABLE_FIELDS.get(key)
        if column is not None:
            order_columns.append(direction(column))

    if not order_columns:
        order_columns = [asc(Member.full_name)]
    return query.order_by(*order_columns)
