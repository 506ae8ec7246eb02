from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, String
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.user_role import AppRole


class Profile(Base):
    """Auth-linked user record; ``id`` is the identity service's user id."""

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)
    email = Column(String(255), nullable=True, index=True)
    full_name = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)
    genotype = Column(String(10), nullable=True)
    address = Column(String(255), nullable=True)
    church_unit = Column(String(100), nullable=True)
    assigned_pastor = Column(String(36), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    role = Column(AppRole, nullable=False, default="user")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    roles = relationship("UserRole", back_populates="profile", cascade="all, delete-orphan", lazy="selectin")
    member = relationship("Member", back_populates="profile", uselist=False)

    @property
    def role_names(self) -> set[str]:
        return {entry.role for entry in self.roles}
