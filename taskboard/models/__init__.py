"""
Database models for the Taskboard API.

Architecture: Task.assigned_user → User, with User.pending_tasks as a derived view.
"""

from taskboard.models.task import UNASSIGNED, UNASSIGNED_NAME, Task
from taskboard.models.user import User

__all__ = [
    "Task",
    "User",
    "UNASSIGNED",
    "UNASSIGNED_NAME",
]
