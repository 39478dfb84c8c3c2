from enum import Enum

class AppRole(str, Enum):
    manager = "manager"
    user = "user"

class TaskStatus(str, Enum):
    todo = "todo"
    in_progress = "in_progress"
    completed = "completed"
