from taskflow.models.activity_log import ActivityLog
from taskflow.models.auth_magic_link import AuthMagicLink
from taskflow.models.profile import Profile
from taskflow.models.task import Task
from taskflow.models.user import User
from taskflow.models.user_role import UserRole

__all__ = ["User", "Profile", "UserRole", "Task", "ActivityLog", "AuthMagicLink"]
