from .database import Database
from .models import ActivityEvent, MonitoringPermissions, Task, UserAction, WorkPattern
from .repository import PersistenceError, Repository

__all__ = [
    "Database", "ActivityEvent", "MonitoringPermissions", "Task", "UserAction",
    "WorkPattern", "PersistenceError", "Repository",
]
