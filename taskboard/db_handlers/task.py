from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db_handlers.base import BaseDBHandler, check_local_db, parse_uuid
from taskboard.models import UNASSIGNED, UNASSIGNED_NAME, Task
from taskboard.utils.logger import setup_logger

logger = setup_logger("task_db_handler")


class TaskDBHandler(BaseDBHandler[Task]):
    def __init__(self):
        super().__init__(Task)

    @check_local_db
    async def assign_tasks(
        self,
        task_ids: Iterable[Any],
        user_id: str,
        user_name: str,
        *,
        db: AsyncSession = None,
    ) -> int:
        """Point every listed task at a user in one bulk update.

        Completion state is left alone. Returns the number of rows matched.
        """
        record_ids = [rid for rid in (parse_uuid(i) for i in task_ids) if rid]
        if not record_ids:
            return 0
        try:
            stmt = (
                update(Task)
                .where(Task.id.in_(record_ids))
                .values(assigned_user=user_id, assigned_user_name=user_name)
                .execution_options(synchronize_session="fetch")
            )
            result = await db.execute(stmt)
            return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Error assigning tasks to user {user_id}: {e}")
            raise

    @check_local_db
    async def unassign_user_tasks(self, user_id: str, *, db: AsyncSession = None) -> int:
        """Reset every task assigned to `user_id` to unassigned.

        Returns the number of tasks changed.
        """
        try:
            stmt = (
                update(Task)
                .where(Task.assigned_user == user_id)
                .values(assigned_user=UNASSIGNED, assigned_user_name=UNASSIGNED_NAME)
                .execution_options(synchronize_session="fetch")
            )
            result = await db.execute(stmt)
            return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Error unassigning tasks of user {user_id}: {e}")
            raise
