from taskboard.db_handlers.base import BaseDBHandler, check_local_db, parse_uuid
from taskboard.db_handlers.task import TaskDBHandler
from taskboard.db_handlers.user import UserDBHandler

__all__ = [
    "BaseDBHandler",
    "check_local_db",
    "parse_uuid",
    "TaskDBHandler",
    "UserDBHandler",
]
