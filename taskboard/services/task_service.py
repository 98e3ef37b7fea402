# Task service: task writes together with the pending-list edits they imply

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db_handlers import TaskDBHandler, UserDBHandler, check_local_db
from taskboard.exceptions import NotFoundError, ValidationError
from taskboard.models import Task
from taskboard.schemas import TaskPayload
from taskboard.services.pending_tasks import resolve_assignment, sync_pending_tasks
from taskboard.services.query_builder import ListQuery
from taskboard.utils.logger import setup_logger

logger = setup_logger("task_service")

REQUIRED_FIELDS_MESSAGE = "Name and deadline are required"


class TaskService:
    def __init__(self):
        self.task_db_handler = TaskDBHandler()
        self.user_db_handler = UserDBHandler()

    @staticmethod
    def _require_name_and_deadline(payload: TaskPayload) -> None:
        if not payload.name or not payload.deadline:
            raise ValidationError(REQUIRED_FIELDS_MESSAGE)

    async def _task_fields(
        self, payload: TaskPayload, *, db: AsyncSession
    ) -> dict[str, Any]:
        assigned_user, assigned_user_name = await resolve_assignment(
            payload.assigned_user, db=db
        )
        return {
            "name": payload.name,
            "description": payload.description or "",
            "deadline": payload.deadline,
            "completed": bool(payload.completed),
            "assigned_user": assigned_user,
            "assigned_user_name": assigned_user_name,
        }

    @check_local_db
    async def create_task(
        self, payload: TaskPayload, *, db: AsyncSession = None
    ) -> Task:
        """Create a task; an assigned, open task joins its user's pending list."""
        self._require_name_and_deadline(payload)
        fields = await self._task_fields(payload, db=db)
        task = await self.task_db_handler.create(fields, db=db)

        if task.assigned_user:
            await sync_pending_tasks(task, add_for_user_id=task.assigned_user, db=db)

        logger.info(f"Created task {task.id} (assigned_user='{task.assigned_user}')")
        return task

    @check_local_db
    async def replace_task(
        self, task_id: str, payload: TaskPayload, *, db: AsyncSession = None
    ) -> Task:
        """
        Replace every client-owned field of a task, keeping `date_created`.

        The id is always pulled from the previous owner's list, and from the
        new owner's list too when the replacement is completed; it is then
        re-added for the new owner when the replacement is still open. That
        covers reassignment, completion and reopening alike.
        """
        self._require_name_and_deadline(payload)

        task = await self.task_db_handler.get(task_id, db=db, for_update=True)
        if task is None:
            raise NotFoundError("Task")
        previous_user_id = task.assigned_user

        fields = await self._task_fields(payload, db=db)
        task = await self.task_db_handler.update(task, fields, db=db)
        next_user_id = task.assigned_user

        remove_from = []
        if previous_user_id:
            remove_from.append(previous_user_id)
        if task.completed and next_user_id:
            remove_from.append(next_user_id)

        await sync_pending_tasks(
            task,
            add_for_user_id=next_user_id if next_user_id and not task.completed else None,
            remove_from_user_ids=remove_from,
            db=db,
        )

        logger.info(
            f"Replaced task {task.id}: assigned_user '{previous_user_id}' -> "
            f"'{next_user_id}', completed={task.completed}"
        )
        return task

    @check_local_db
    async def delete_task(self, task_id: str, *, db: AsyncSession = None) -> Task:
        """Delete a task and pull it from its owner's pending list."""
        task = await self.task_db_handler.remove(task_id, db=db)
        if task is None:
            raise NotFoundError("Task")

        if task.assigned_user:
            await self.user_db_handler.pull_pending_tasks(
                [task.assigned_user], [str(task.id)], db=db
            )

        logger.info(f"Deleted task {task.id}")
        return task

    @check_local_db
    async def get_task(self, task_id: str, *, db: AsyncSession = None) -> Task:
        task = await self.task_db_handler.get(task_id, db=db)
        if task is None:
            raise NotFoundError("Task")
        return task

    @check_local_db
    async def list_tasks(
        self, query: ListQuery, *, db: AsyncSession = None
    ) -> list[Task] | int:
        """Tasks matching the query, or only their number when `count` is set."""
        if query.count:
            return await self.task_db_handler.count(query, db=db)
        return await self.task_db_handler.find(query, db=db)
