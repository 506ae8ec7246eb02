from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.user_role import AppRole, new_uuid

MEMBER_CATEGORIES = ("Members", "Pastors", "Workers", "Visitors", "Partners", "Sons", "MINT", "Others")
MemberCategory = Enum(*MEMBER_CATEGORIES, name="member_category")


class Member(Base):
    """Congregant record.

    The hosted table uses lowercase column names (``fullname``, ``churchunit``,
    ``isactive`` ...); attributes keep snake_case and map onto them.
    """

    __tablename__ = "members"

    id = Column(String(36), primary_key=True, default=new_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True)
    full_name = Column("fullname", String(255), nullable=False)
    email = Column(String(255), nullable=True, unique=True, index=True)
    phone = Column(String(30), nullable=True)
    address = Column(String(255), nullable=True)
    genotype = Column(String(10), nullable=True)
    category = Column(MemberCategory, nullable=False, default="Members")
    title = Column(String(100), nullable=True)
    assigned_to_id = Column("assignedto", String(36), ForeignKey("members.id", ondelete="SET NULL"), nullable=True)
    church_unit = Column("churchunit", String(100), nullable=True)
    church_units = Column("churchunits", JSON, nullable=False, default=list)
    auxano_group = Column("auxanogroup", String(100), nullable=True)
    join_date = Column("joindate", Date, nullable=False, default=date.today)
    notes = Column(Text, nullable=True)
    is_active = Column("isactive", Boolean, nullable=False, default=True)
    role = Column(AppRole, nullable=False, default="user")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    profile = relationship("Profile", back_populates="member")
    assigned_pastor = relationship("Member", remote_side="Member.id", back_populates="assigned_members")
    assigned_members = relationship("Member", back_populates="assigned_pastor")

    @property
    def is_pastor(self) -> bool:
        return self.category == "Pastors"
