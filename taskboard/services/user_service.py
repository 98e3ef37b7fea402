"""
User service: user writes and their effect on task assignment.

`create_user` is the one compound write of the API. A new user can be created
together with a batch of existing, open tasks; the user insert, the task
reassignment and the clean-up of the previous owners' pending lists run in a
single transaction, so either all of it is stored or none of it.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db_handlers import (
    TaskDBHandler,
    UserDBHandler,
    check_local_db,
    parse_uuid,
)
from taskboard.exceptions import NotFoundError, ValidationError
from taskboard.models import User
from taskboard.schemas import UserPayload
from taskboard.services.pending_tasks import normalize_id_list
from taskboard.services.query_builder import ListQuery
from taskboard.utils.logger import setup_logger

logger = setup_logger("user_service")

REQUIRED_FIELDS_MESSAGE = "Name and email are required"
DUPLICATE_EMAIL_MESSAGE = "User with same email already exists"
NOT_A_LIST_MESSAGE = "pendingTasks must be an array of task IDs"
MISSING_TASKS_MESSAGE = "Invalid pendingTasks: one or more task IDs do not exist"
COMPLETED_TASKS_MESSAGE = "Invalid pendingTasks: contains completed task(s)"


def canonical_task_ids(pending_tasks: Any) -> list[str]:
    """
    Normalize a caller-supplied pendingTasks value into canonical id strings.

    Raises ValidationError when the value is not a list or holds a value that
    cannot be a task id.
    """
    if pending_tasks is None:
        return []
    if not isinstance(pending_tasks, list):
        raise ValidationError(NOT_A_LIST_MESSAGE)

    task_ids = []
    for raw_id in normalize_id_list(pending_tasks):
        task_uuid = parse_uuid(raw_id)
        if task_uuid is None:
            raise ValidationError(MISSING_TASKS_MESSAGE)
        task_ids.append(str(task_uuid))
    return list(dict.fromkeys(task_ids))


class UserService:
    def __init__(self):
        self.user_db_handler = UserDBHandler()
        self.task_db_handler = TaskDBHandler()

    async def create_user(self, payload: UserPayload) -> User:
        """
        Create a user, optionally taking over a batch of open tasks.

        The cheap preconditions are checked before the transaction opens; the
        transaction itself repeats the e-mail check and relies on the unique
        index as the last guard.
        """
        if not payload.name or not payload.email:
            raise ValidationError(REQUIRED_FIELDS_MESSAGE)
        task_ids = canonical_task_ids(payload.pending_tasks)

        if await self.user_db_handler.get_user_by_email(payload.email):
            raise ValidationError(DUPLICATE_EMAIL_MESSAGE)

        try:
            user_id = await self._create_user_with_tasks(
                payload.name, payload.email, task_ids
            )
        except IntegrityError as e:
            raise ValidationError(DUPLICATE_EMAIL_MESSAGE) from e

        user = await self.user_db_handler.get(user_id)
        logger.info(f"Created user {user.id} with {len(task_ids)} pending tasks")
        return user

    @check_local_db
    async def _create_user_with_tasks(
        self,
        name: str,
        email: str,
        task_ids: list[str],
        *,
        db: AsyncSession = None,
    ) -> str:
        """Transaction body of `create_user`. Returns the new user's id."""
        if await self.user_db_handler.get_user_by_email(email, db=db):
            raise ValidationError(DUPLICATE_EMAIL_MESSAGE)

        user = await self.user_db_handler.create(
            {"name": name, "email": email, "pending_tasks": []}, db=db
        )
        user_id = str(user.id)

        if not task_ids:
            return user_id

        tasks = await self.task_db_handler.get_many_by_ids(
            task_ids, db=db, for_update=True
        )
        if len(tasks) != len(task_ids):
            raise ValidationError(MISSING_TASKS_MESSAGE)
        if any(task.completed for task in tasks):
            raise ValidationError(COMPLETED_TASKS_MESSAGE)

        previous_owners = normalize_id_list(task.assigned_user for task in tasks)

        for task in tasks:
            task.assigned_user = user_id
            task.assigned_user_name = user.name
            task.completed = False
        await db.flush()

        previous_owners = [uid for uid in previous_owners if uid != user_id]
        if previous_owners:
            await self.user_db_handler.pull_pending_tasks(
                previous_owners, task_ids, db=db
            )

        await self.user_db_handler.add_pending_tasks(user_id, task_ids, db=db)
        logger.debug(
            f"User {user_id} took over tasks {task_ids} from {previous_owners}"
        )
        return user_id

    @check_local_db
    async def update_user(
        self, user_id: str, payload: UserPayload, *, db: AsyncSession = None
    ) -> User:
        """
        Update the fields present in the payload.

        A `pendingTasks` list is stored as given (normalized) and pushed
        forward onto the listed tasks, which are pointed at this user. Tasks
        dropped from the list keep their assignment, and the previous owners'
        lists are not touched; `rebuild_pending_tasks` repairs such drift.
        """
        user = await self.user_db_handler.get(user_id, db=db, for_update=True)
        if user is None:
            raise NotFoundError("User")

        provided = payload.provided_fields()
        update_data = {}

        if "name" in provided:
            if not payload.name:
                raise ValidationError("name cannot be empty")
            update_data["name"] = payload.name

        if "email" in provided:
            if not payload.email:
                raise ValidationError("email cannot be empty")
            if payload.email != user.email:
                other = await self.user_db_handler.get_user_by_email(
                    payload.email, db=db
                )
                if other is not None:
                    raise ValidationError(DUPLICATE_EMAIL_MESSAGE)
            update_data["email"] = payload.email

        task_ids = None
        if "pending_tasks" in provided:
            task_ids = canonical_task_ids(payload.pending_tasks)
            update_data["pending_tasks"] = task_ids

        user = await self.user_db_handler.update(user, update_data, db=db)

        if task_ids:
            matched = await self.task_db_handler.assign_tasks(
                task_ids, str(user.id), user.name, db=db
            )
            logger.info(f"User {user.id} update assigned {matched} tasks")

        return user

    @check_local_db
    async def delete_user(self, user_id: str, *, db: AsyncSession = None) -> User:
        """Delete a user and unassign every task that pointed at it."""
        user = await self.user_db_handler.remove(user_id, db=db)
        if user is None:
            raise NotFoundError("User")

        unassigned = await self.task_db_handler.unassign_user_tasks(
            str(user.id), db=db
        )
        logger.info(f"Deleted user {user.id}, {unassigned} tasks unassigned")
        return user

    @check_local_db
    async def get_user(self, user_id: str, *, db: AsyncSession = None) -> User:
        user = await self.user_db_handler.get(user_id, db=db)
        if user is None:
            raise NotFoundError("User")
        return user

    @check_local_db
    async def list_users(
        self, query: ListQuery, *, db: AsyncSession = None
    ) -> list[User] | int:
        if query.count:
            return await self.user_db_handler.count(query, db=db)
        return await self.user_db_handler.find(query, db=db)
