from .user_role import UserRole  # noqa: F401
from .profile import Profile  # noqa: F401
from .member import Member  # noqa: F401
from .content import Announcement, Event, Sermon  # noqa: F401
