"""
Pending-task synchronizer.

`User.pending_tasks` is a denormalized view of the tasks table: a task id is
in a user's list exactly when the task is assigned to that user and is not
completed. The functions here apply the incremental edits that keep the view
in step after a task or user write. They all take the caller's session, so
the edits land in the same transaction as the write that caused them.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db_handlers import UserDBHandler
from taskboard.exceptions import ValidationError
from taskboard.models import UNASSIGNED, UNASSIGNED_NAME, Task
from taskboard.utils.logger import setup_logger

logger = setup_logger("pending_tasks")

user_db_handler = UserDBHandler()


def normalize_id_list(values: Iterable[Any] | None) -> list[str]:
    """Deduplicate, drop empty values and coerce to strings, keeping order."""
    return list(dict.fromkeys(str(v) for v in values or [] if v))


async def sync_pending_tasks(
    task: Task,
    add_for_user_id: str | None = None,
    remove_from_user_ids: Iterable[Any] = (),
    *,
    db: AsyncSession,
) -> None:
    """
    Apply the pending-list edits for one task that has just been written.

    The task id is pulled from every user in `remove_from_user_ids` in one
    bulk step, then added to `add_for_user_id` when given, unless the task is
    completed. Removal runs first, so listing the same user on both sides
    leaves the id present exactly when the task is still pending.
    """
    task_id = str(task.id)

    to_remove = normalize_id_list(remove_from_user_ids)
    if to_remove:
        changed = await user_db_handler.pull_pending_tasks(to_remove, [task_id], db=db)
        logger.debug(f"Pulled task {task_id} from {changed} of users {to_remove}")

    if add_for_user_id and not task.completed:
        await user_db_handler.add_pending_tasks(
            str(add_for_user_id), [task_id], db=db
        )
        logger.debug(f"Added task {task_id} to pending list of {add_for_user_id}")


async def resolve_assignment(
    assigned_user: Any, *, db: AsyncSession
) -> tuple[str, str]:
    """
    Return the `(assigned_user, assigned_user_name)` pair to store on a task.

    A non-empty string must name an existing user, whose current name is
    used; otherwise the write is rejected. Any other value means unassigned,
    whatever name the caller sent along.
    """
    if not assigned_user or not isinstance(assigned_user, str):
        return UNASSIGNED, UNASSIGNED_NAME

    user = await user_db_handler.get(assigned_user, db=db)
    if user is None:
        raise ValidationError("assignedUser not found")
    return str(user.id), user.name
