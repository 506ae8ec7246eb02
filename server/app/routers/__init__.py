"""API routers for the Gospel Labour Ministry application."""

from app.routers import (
    announcements,
    auth,
    dashboard,
    events,
    members,
    pastors,
    profile,
    sermons,
    super_admins,
    sync,
    users,
    whoami,
)  # noqa: F401
