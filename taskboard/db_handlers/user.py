from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db_handlers.base import BaseDBHandler, check_local_db
from taskboard.models import Task, User
from taskboard.utils.logger import setup_logger

logger = setup_logger("db_handlers.user")


def merge_ids(current: Iterable[str], additions: Iterable[str]) -> list[str]:
    """Set-union of two id lists, keeping the order of first appearance."""
    merged = list(dict.fromkeys(current or []))
    seen = set(merged)
    for task_id in additions:
        if task_id not in seen:
            merged.append(task_id)
            seen.add(task_id)
    return merged


class UserDBHandler(BaseDBHandler[User]):
    def __init__(self):
        super().__init__(User)

    @check_local_db
    async def get_user_by_email(
        self, email: str, *, db: AsyncSession = None
    ) -> User | None:
        """Get a user by e-mail address."""
        try:
            return await self.get_by_attributes(email=email, db=db)
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving user by email '{email}': {e}")
            raise

    @check_local_db
    async def add_pending_tasks(
        self, user_id: Any, task_ids: Iterable[str], *, db: AsyncSession = None
    ) -> User | None:
        """Add task ids to one user's pending list without creating duplicates."""
        user = await self.get(user_id, db=db, for_update=True)
        if user is None:
            logger.warning(f"User {user_id} not found while adding pending tasks")
            return None
        merged = merge_ids(user.pending_tasks, task_ids)
        if merged != user.pending_tasks:
            user.pending_tasks = merged
            await db.flush()
        return user

    @check_local_db
    async def pull_pending_tasks(
        self,
        user_ids: Iterable[Any],
        task_ids: Iterable[str],
        *,
        db: AsyncSession = None,
    ) -> int:
        """Remove task ids from the pending lists of every listed user.

        Returns the number of users whose list changed.
        """
        to_pull = set(task_ids)
        if not to_pull:
            return 0
        users = await self.get_many_by_ids(user_ids, db=db, for_update=True)
        changed = 0
        for user in users:
            remaining = [tid for tid in user.pending_tasks or [] if tid not in to_pull]
            if remaining != user.pending_tasks:
                user.pending_tasks = remaining
                changed += 1
        if changed:
            await db.flush()
        return changed

    @check_local_db
    async def rebuild_pending_tasks(self, *, db: AsyncSession = None) -> int:
        """Recompute every user's pending list from the tasks table.

        Existing order is kept for ids that are still pending; newly found
        ids are appended in creation order. Returns the number of users changed.
        """
        stmt = (
            select(Task.assigned_user, Task.id)
            .where(Task.assigned_user != "", Task.completed.is_(False))
            .order_by(Task.date_created)
        )
        result = await db.execute(stmt)
        pending_by_user: dict[str, list[str]] = {}
        for assigned_user, task_id in result.all():
            pending_by_user.setdefault(assigned_user, []).append(str(task_id))

        users = (await db.execute(select(User).with_for_update())).scalars().all()
        changed = 0
        for user in users:
            expected = pending_by_user.get(str(user.id), [])
            expected_set = set(expected)
            kept = [tid for tid in user.pending_tasks or [] if tid in expected_set]
            rebuilt = merge_ids(kept, expected)
            if rebuilt != user.pending_tasks:
                logger.info(
                    f"Pending tasks of user {user.id} drifted: "
                    f"{user.pending_tasks} -> {rebuilt}"
                )
                user.pending_tasks = rebuilt
                changed += 1
        await db.flush()
        return changed
