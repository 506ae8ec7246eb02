from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class DashboardMetricsOut(BaseModel):
    total_members: int
    active_members: int
    new_members: int
    registered_users: int
    admin_users: int
    super_admins: int
    pastors: int
    church_units: dict[str, int] = Field(default_factory=dict)
    system_status: str
    last_updated: datetime
    error: Optional[str] = None

    class Config:
        from_attributes = True
